# core/config_validator.py

from typing import List

import pytz

from core.config import settings
from core.logging_config import logger


STORE_BACKENDS = ("supabase", "memory")


def validate_required_config() -> List[str]:
    """
    Validate that all required settings are present and usable.
    Returns list of problems.
    """
    problems = []

    if settings.ACCESS_STORE_BACKEND not in STORE_BACKENDS:
        problems.append(
            f"ACCESS_STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}"
        )

    # Supabase credentials only matter for the hosted backend
    if settings.ACCESS_STORE_BACKEND == "supabase":
        if not settings.SUPABASE_URL:
            problems.append("SUPABASE_URL")
        if not settings.SUPABASE_SERVICE_ROLE_KEY:
            problems.append("SUPABASE_SERVICE_ROLE_KEY")

    if settings.ACCESS_STORE_BACKEND == "memory":
        if settings.ENV == "production":
            problems.append("ACCESS_STORE_BACKEND=memory is not allowed in production")
        if not settings.JWT_SECRET_KEY:
            problems.append("JWT_SECRET_KEY (needed for dev tokens with the memory backend)")

    try:
        pytz.timezone(settings.ACCESS_TIMEZONE)
    except pytz.UnknownTimeZoneError:
        problems.append(f"ACCESS_TIMEZONE ({settings.ACCESS_TIMEZONE!r} is not a known zone)")

    return problems


def validate_optional_config() -> List[str]:
    """
    Validate optional but recommended configuration.
    Returns list of warnings.
    """
    warnings = []

    if settings.INVALID_ROLE_POLICY == "viewer":
        warnings.append("INVALID_ROLE_POLICY=viewer (unknown roles are coerced to viewer)")

    return warnings


def validate_config_on_startup():
    """
    Validate configuration on application startup.
    Raises RuntimeError if critical config is missing.
    Logs warnings for optional config.
    """
    missing_required = validate_required_config()
    optional_warnings = validate_optional_config()

    if missing_required:
        error_msg = f"Invalid or missing configuration: {', '.join(missing_required)}"
        logger.error(error_msg)
        raise RuntimeError(error_msg)

    for warning in optional_warnings:
        logger.warning(f"Configuration warning: {warning}")

    logger.info("Configuration validation passed")
