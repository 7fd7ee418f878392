# routers/dev_auth.py

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException
from jose import jwt
from pydantic import BaseModel

from core.access_store import AccessStore
from core.config import settings
from dependencies.access import get_access_store

# Mounted by main.create_app only for the memory backend outside production
router = APIRouter(prefix="/auth", tags=["Auth (Dev Only)"])


class DevLogin(BaseModel):
    user_id: str
    email: str | None = None


@router.post("/dev-login", summary="DEV: Get a token for a seeded user")
def dev_login(payload: DevLogin, store: AccessStore = Depends(get_access_store)):
    """
    ⚠️ DEV ONLY. Returns a signed token for a user that exists in the
    in-memory store. The role is still read from the store on every request.
    """
    role = store.fetch_global_role(payload.user_id)
    if role is None:
        raise HTTPException(404, f"No profile for user {payload.user_id}")

    expires = datetime.now(timezone.utc) + timedelta(hours=settings.DEV_TOKEN_EXPIRE_HOURS)
    token = jwt.encode(
        {"sub": payload.user_id, "email": payload.email, "exp": expires},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )

    return {
        "access_token": token,
        "token_type": "bearer",
        "role": role,
        "expires_in_hours": settings.DEV_TOKEN_EXPIRE_HOURS,
    }
