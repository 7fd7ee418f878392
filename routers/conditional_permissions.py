# routers/conditional_permissions.py

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from core.access_store import AccessStore
from core.role_admin import RoleAdministrator
from dependencies.access import get_access_store, get_role_admin
from dependencies.auth import CurrentUser, get_current_user, requires_capability
from models.enums import Capability

router = APIRouter(
    prefix="/conditional-permissions",
    tags=["Conditional Permissions"],
)


class ConditionalPermissionCreate(BaseModel):
    user_id: str
    facility_id: str
    permission_name: str = Field(min_length=1)
    conditions: Optional[Dict[str, Any]] = Field(
        None,
        description="{time_windows: [{start_hour, end_hour, allowed_days}], location_constraints: {required_facility}}",
    )
    expires_at: Optional[datetime] = None
    reason: Optional[str] = None


@router.post("", status_code=201, summary="Grant a conditional permission")
def grant_conditional_permission(
    payload: ConditionalPermissionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    admin: RoleAdministrator = Depends(get_role_admin),
):
    return admin.grant_conditional_permission(
        payload.user_id,
        payload.facility_id,
        payload.permission_name,
        payload.conditions,
        granted_by=current_user.id,
        expires_at=payload.expires_at,
        reason=payload.reason,
    )


@router.delete("/{permission_id}", summary="Revoke a conditional permission")
def revoke_conditional_permission(
    permission_id: str,
    reason: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    admin: RoleAdministrator = Depends(get_role_admin),
):
    return admin.revoke_conditional_permission(permission_id, current_user.id, reason)


@router.get(
    "",
    summary="List conditional permissions",
    dependencies=[Depends(requires_capability(Capability.manageRoles, resource_type="conditional_permissions"))],
)
def list_conditional_permissions(
    user_id: Optional[str] = Query(None),
    facility_id: Optional[str] = Query(None),
    include_inactive: bool = Query(False),
    store: AccessStore = Depends(get_access_store),
):
    return store.list_conditional_permissions(user_id, facility_id, active_only=not include_inactive)


@router.get(
    "/usage-log",
    summary="Permission usage log (every access decision)",
    dependencies=[Depends(requires_capability(Capability.auditTrail, resource_type="permission_usage_log"))],
)
def list_usage_log(
    user_id: Optional[str] = Query(None),
    facility_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    store: AccessStore = Depends(get_access_store),
):
    return store.list_usage_log(user_id, facility_id, limit)
