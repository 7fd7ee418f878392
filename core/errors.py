# core/errors.py

from typing import Optional

from fastapi import HTTPException


# ============================================================
# ACCESS CONTROL ERROR TAXONOMY
# ============================================================

class AccessControlError(Exception):
    """Base class for every failure raised by the access-control core."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnknownRoleError(AccessControlError):
    """A role string is not in the closed role set."""

    status_code = 400

    def __init__(self, role):
        super().__init__(f"Unknown role: {role!r}")
        self.role = role


class InconsistentOverrideError(AccessControlError):
    """More than one active facility override exists for the same user/facility."""

    status_code = 409

    def __init__(self, user_id: str, facility_id: str, count: int):
        super().__init__(
            f"{count} active facility role overrides found for user "
            f"{user_id} at facility {facility_id}"
        )
        self.user_id = user_id
        self.facility_id = facility_id
        self.count = count


class InsufficientSeniorityError(AccessControlError):
    """The acting user's role is not senior enough for the mutation."""

    status_code = 403


class ExternalStoreError(AccessControlError):
    """Timeout or failure talking to the backing store."""

    status_code = 503


class OverrideConflictError(AccessControlError):
    """An active override already exists for the user/facility pair."""

    status_code = 409


class OverrideNotFoundError(AccessControlError):
    status_code = 404


class PermissionNotFoundError(AccessControlError):
    status_code = 404


class UserNotFoundError(AccessControlError):
    status_code = 404


class InvalidConditionError(AccessControlError):
    """A conditional permission's constraints are malformed or unsupported."""

    status_code = 400


# ============================================================
# SUPABASE ERROR HELPERS
# ============================================================

def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    # Case 1: Supabase Auth / PostgREST errors
    message = getattr(error, "message", None)
    if message:
        return str(message)

    # Case 2: errors with args (common)
    if getattr(error, "args", None):
        return str(error.args[0])

    # Case 3: plain string fallback
    return str(error) or error.__class__.__name__


def extract_supabase_error_code(error: Exception) -> Optional[str]:
    """Postgres error code carried by PostgREST errors (e.g. '23505')."""
    code = getattr(error, "code", None)
    if code is None and getattr(error, "args", None):
        first = error.args[0]
        if isinstance(first, dict):
            code = first.get("code")
    return str(code) if code is not None else None


def store_error(error: Exception, operation: str) -> AccessControlError:
    """
    Convert a Supabase / transport error into the access-control taxonomy.
    Returns the error (doesn't raise) so the caller can `raise ... from error`.
    """
    from core.logging_config import logger

    detail = extract_supabase_error(error)
    logger.error(f"{operation}: {detail}")

    if extract_supabase_error_code(error) == "23505":
        return OverrideConflictError(f"{operation}: record already exists")
    return ExternalStoreError(f"{operation}: {detail}")


# ============================================================
# HTTP MAPPING
# ============================================================

def to_http_exception(error: AccessControlError) -> HTTPException:
    """Map an access-control failure to the HTTP error shown to operators."""
    return HTTPException(status_code=error.status_code, detail=error.message)
