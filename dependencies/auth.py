from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import BaseModel

from core.access_control import AccessController
from core.access_store import AccessStore
from core.config import settings
from core.errors import AccessControlError, to_http_exception
from core.supabase_client import get_supabase_client
from dependencies.access import get_access_controller, get_access_store
from models.decision import RequestContext
from models.enums import Capability, Role


bearer_scheme = HTTPBearer()


# ============================================================
# Current User Model
# ============================================================
class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: Role                      # global role, always read from the store


# ============================================================
# TOKEN DECODING
# ============================================================
def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _authenticate_dev_token(token: str) -> tuple:
    """Memory backend: HS256 tokens issued by /auth/dev-login."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise _unauthorized()

    user_id = payload.get("sub")
    if not user_id:
        raise _unauthorized()
    return user_id, payload.get("email")


def _authenticate_supabase_token(token: str) -> tuple:
    """Supabase backend: validate the JWT through GoTrue."""
    client = get_supabase_client()
    if not client:
        raise HTTPException(500, "Supabase client not configured")

    try:
        auth_resp = client.auth.get_user(token)
    except Exception:
        raise _unauthorized()

    if not auth_resp or not auth_resp.user:
        raise _unauthorized()
    return auth_resp.user.id, auth_resp.user.email


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    store: AccessStore = Depends(get_access_store),
) -> CurrentUser:
    token = credentials.credentials

    if settings.ACCESS_STORE_BACKEND == "memory":
        user_id, email = _authenticate_dev_token(token)
    else:
        user_id, email = _authenticate_supabase_token(token)

    # Role never comes from token metadata
    try:
        role = store.fetch_global_role(user_id)
    except AccessControlError as e:
        raise to_http_exception(e)

    if role is None:
        raise HTTPException(status_code=403, detail="No profile for this account")

    return CurrentUser(id=user_id, email=email, role=role)


# ============================================================
# CAPABILITY CHECK (goes through the access controller)
# ============================================================
def requires_capability(capability: Capability, resource_type: str = "api"):
    """
    Usage:
        @router.get("/", dependencies=[Depends(requires_capability(Capability.auditTrail))])

    The facility is taken from a `facility_id` path or query parameter when
    present. Every check lands in the permission usage log.
    """

    def dependency(
        request: Request,
        current_user: CurrentUser = Depends(get_current_user),
        controller: AccessController = Depends(get_access_controller),
    ) -> CurrentUser:
        facility_id = request.path_params.get("facility_id") or request.query_params.get("facility_id")
        decision = controller.check_access(
            current_user.id,
            facility_id,
            capability.value,
            RequestContext(
                facility_id=facility_id,
                resource_type=resource_type,
                resource_id=request.url.path,
            ),
        )
        if not decision.granted:
            raise HTTPException(
                status_code=403,
                detail=f"Insufficient permissions: '{capability}' required",
            )
        return current_user

    return dependency
