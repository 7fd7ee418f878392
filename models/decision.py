# models/decision.py

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.enums import AccessMethod, Role


class RequestContext(BaseModel):
    """
    Per-check context supplied by the caller.
    facility_id is where the request is being made from; it is matched
    against location constraints.
    """
    facility_id: Optional[str] = None
    resource_type: str = "facility"
    resource_id: Optional[str] = None
    session_id: Optional[str] = None


class RoleResolution(BaseModel):
    """
    Outcome of resolving the effective role.
    When `failure` is set the resolution failed closed and `role` is viewer.
    """
    role: Role
    via_override: bool = False
    override_id: Optional[str] = None
    failure: Optional[str] = None

    @property
    def failed_closed(self) -> bool:
        return self.failure is not None


class AccessDecision(BaseModel):
    user_id: str
    facility_id: Optional[str] = None
    permission_name: str
    granted: bool
    access_method: AccessMethod
    effective_role: Role
    via_override: bool = False
    conditions_met: Dict[str, Any] = Field(default_factory=dict)


class BulkRoleAssignmentResult(BaseModel):
    assigned_count: int
    assigned_user_ids: List[str] = Field(default_factory=list)
    failed_assignments: List[str] = Field(default_factory=list)
