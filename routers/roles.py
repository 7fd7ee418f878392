# routers/roles.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from core.access_store import AccessStore
from core.role_admin import RoleAdministrator
from dependencies.access import get_access_store, get_role_admin
from dependencies.auth import CurrentUser, get_current_user, requires_capability
from models.enums import Capability

router = APIRouter(
    prefix="/roles",
    tags=["Role Management"],
)


# ============================================================
# Pydantic Models
# ============================================================
class GlobalRoleChange(BaseModel):
    role: str
    reason: Optional[str] = None


class FacilityOverrideCreate(BaseModel):
    user_id: str
    facility_id: str
    role: str
    reason: Optional[str] = None


class FacilityOverrideBulkCreate(BaseModel):
    user_ids: List[str] = Field(min_length=1)
    facility_id: str
    role: str
    reason: Optional[str] = None


# ============================================================
# PUT /roles/users/{user_id}/global
# ============================================================
@router.put(
    "/users/{user_id}/global",
    summary="Change a user's global role",
    description="Zonal, regional or national only. The new role must be below the caller's.",
)
def change_global_role(
    user_id: str,
    payload: GlobalRoleChange,
    current_user: CurrentUser = Depends(get_current_user),
    admin: RoleAdministrator = Depends(get_role_admin),
):
    entry = admin.mutate_global_role(user_id, payload.role, current_user.id, payload.reason)
    if entry is None:
        return {"user_id": user_id, "role": payload.role, "changed": False}
    return {"user_id": user_id, "role": entry.new_role, "changed": True, "audit": entry}


# ============================================================
# Facility overrides
# ============================================================
@router.post("/facility-overrides", status_code=201, summary="Assign a facility-specific role")
def assign_facility_override(
    payload: FacilityOverrideCreate,
    current_user: CurrentUser = Depends(get_current_user),
    admin: RoleAdministrator = Depends(get_role_admin),
):
    return admin.assign_facility_override(
        payload.user_id,
        payload.facility_id,
        payload.role,
        granted_by=current_user.id,
        reason=payload.reason,
    )


@router.post("/facility-overrides/bulk", summary="Assign one facility role to many users")
def bulk_assign_facility_overrides(
    payload: FacilityOverrideBulkCreate,
    current_user: CurrentUser = Depends(get_current_user),
    admin: RoleAdministrator = Depends(get_role_admin),
):
    return admin.bulk_assign_facility_overrides(
        payload.user_ids,
        payload.facility_id,
        payload.role,
        granted_by=current_user.id,
        reason=payload.reason,
    )


@router.delete("/facility-overrides/{override_id}", summary="Revoke a facility-specific role")
def revoke_facility_override(
    override_id: str,
    reason: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    admin: RoleAdministrator = Depends(get_role_admin),
):
    return admin.revoke_facility_override(override_id, current_user.id, reason)


@router.get(
    "/facility-overrides",
    summary="List facility-specific roles",
    dependencies=[Depends(requires_capability(Capability.manageRoles, resource_type="facility_roles"))],
)
def list_facility_overrides(
    user_id: Optional[str] = Query(None),
    facility_id: Optional[str] = Query(None),
    include_inactive: bool = Query(False),
    store: AccessStore = Depends(get_access_store),
):
    return store.list_facility_overrides(user_id, facility_id, active_only=not include_inactive)


# ============================================================
# GET /roles/audit-log
# ============================================================
@router.get(
    "/audit-log",
    summary="Role change history",
    dependencies=[Depends(requires_capability(Capability.auditTrail, resource_type="role_audit_log"))],
)
def list_audit_log(
    target_user_id: Optional[str] = Query(None),
    facility_id: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    store: AccessStore = Depends(get_access_store),
):
    return store.list_audit_log(target_user_id, facility_id, limit)
