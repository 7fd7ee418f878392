# routers/access.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from core.access_control import AccessController
from core.access_store import AccessStore
from core.permissions import capabilities_for, derived_access, role_grants
from core.resolver import resolve_effective_role
from core.roles import (
    assignable_roles,
    rank_of,
    role_description,
    role_display_name,
    roles_by_seniority,
    to_role,
)
from dependencies.access import get_access_controller, get_access_store
from dependencies.auth import CurrentUser, get_current_user
from models.decision import AccessDecision, RequestContext
from models.enums import Capability

router = APIRouter(
    prefix="/access",
    tags=["Access Control"],
)


# ============================================================
# Pydantic Models
# ============================================================
class CheckAccessRequest(BaseModel):
    user_id: Optional[str] = Field(None, description="Defaults to the caller")
    facility_id: Optional[str] = None
    permission_name: str = Field(min_length=1)
    context: RequestContext = Field(default_factory=RequestContext)


# -----------------------------------------------------
# Helper: acting on someone else requires manageUsers
# -----------------------------------------------------
def require_self_or_user_manager(current_user: CurrentUser, user_id: str):
    if user_id == current_user.id:
        return
    if not role_grants(current_user.role, Capability.manageUsers):
        raise HTTPException(
            status_code=403,
            detail="Insufficient permissions: 'manageUsers' required to inspect other users",
        )


# ============================================================
# POST /access/check
# ============================================================
@router.post(
    "/check",
    response_model=AccessDecision,
    summary="Evaluate and record an access decision",
)
def check_access(
    payload: CheckAccessRequest,
    current_user: CurrentUser = Depends(get_current_user),
    controller: AccessController = Depends(get_access_controller),
):
    user_id = payload.user_id or current_user.id
    require_self_or_user_manager(current_user, user_id)

    return controller.check_access(
        user_id,
        payload.facility_id,
        payload.permission_name,
        payload.context,
    )


# ============================================================
# GET /access/effective-role/{user_id}
# ============================================================
@router.get(
    "/effective-role/{user_id}",
    summary="Role that governs decisions for a user (optionally at a facility)",
)
def get_effective_role(
    user_id: str,
    facility_id: Optional[str] = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    store: AccessStore = Depends(get_access_store),
):
    require_self_or_user_manager(current_user, user_id)

    resolution = resolve_effective_role(store, user_id, facility_id)
    # Cause of a fail-closed resolution stays in the service log
    return {
        "user_id": user_id,
        "facility_id": facility_id,
        "role": resolution.role,
        "via_override": resolution.via_override,
    }


# ============================================================
# GET /access/roles
# ============================================================
@router.get("/roles", summary="All roles in seniority order")
def list_roles(current_user: CurrentUser = Depends(get_current_user)):
    return [
        {
            "role": role,
            "rank": rank_of(role),
            "display_name": role_display_name(role),
            "description": role_description(role),
        }
        for role in roles_by_seniority()
    ]


# ============================================================
# GET /access/roles/{role}/capabilities
# ============================================================
@router.get("/roles/{role}/capabilities", summary="Base CapabilitySet for a role")
def get_role_capabilities(role: str, current_user: CurrentUser = Depends(get_current_user)):
    role = to_role(role)
    return {
        "role": role,
        "capabilities": dict(capabilities_for(role)),
        "derived": derived_access(role),
    }


# ============================================================
# GET /access/me
# ============================================================
@router.get("/me", summary="Caller's global role, capabilities and assignable roles")
def get_my_access(current_user: CurrentUser = Depends(get_current_user)):
    return {
        "user_id": current_user.id,
        "role": current_user.role,
        "display_name": role_display_name(current_user.role),
        "capabilities": dict(capabilities_for(current_user.role)),
        "derived": derived_access(current_user.role),
        "assignable_roles": assignable_roles(current_user.role),
    }
