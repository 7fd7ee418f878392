from typing import Dict, List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field

from models.enums import InvalidRolePolicy


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Pharma Access Control API"
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # -------------------------------------------------
    # CORS (dashboard origins)
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = []

    # -------------------------------------------------
    # Supabase (Primary DB & Auth)
    # -------------------------------------------------
    SUPABASE_URL: Optional[str] = None
    SUPABASE_ANON_KEY: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    # -------------------------------------------------
    # Access store
    # -------------------------------------------------
    ACCESS_STORE_BACKEND: str = Field(
        "supabase",
        description="'supabase' for the hosted backend, 'memory' for local development",
    )
    ACCESS_STORE_TIMEOUT_SECONDS: float = Field(
        5.0,
        gt=0,
        description="Upper bound on every store request; a timeout denies access",
    )
    MEMORY_STORE_SEED_USERS: Dict[str, str] = Field(
        default_factory=dict,
        description="user_id → role profiles loaded into the memory store at startup",
    )

    # -------------------------------------------------
    # Dev tokens (memory backend only, never production)
    # -------------------------------------------------
    JWT_SECRET_KEY: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    DEV_TOKEN_EXPIRE_HOURS: int = 12

    # -------------------------------------------------
    # Access evaluation
    # -------------------------------------------------
    INVALID_ROLE_POLICY: InvalidRolePolicy = Field(
        InvalidRolePolicy.reject,
        description="'reject' fails closed on unknown role strings, 'viewer' coerces them to viewer",
    )
    ACCESS_TIMEZONE: str = Field(
        "UTC",
        description="IANA zone used for conditional permission time windows",
    )

    # -------------------------------------------------
    # Model Config
    # -------------------------------------------------
    class Config:
        case_sensitive = True
        # Real environment variables only, no .env file


# Instantiate settings
settings = Settings()
