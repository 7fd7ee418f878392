# models/audit.py

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from models.enums import AccessMethod, Role, RoleAction, RoleType


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ===============================================================
# PERMISSION USAGE LOG (one row per access decision)
# ===============================================================

class PermissionUsageLogEntry(BaseModel):
    user_id: str
    permission_name: str
    resource_type: str
    resource_id: Optional[str] = None
    facility_id: Optional[str] = None
    access_granted: bool
    access_method: AccessMethod
    conditions_met: Dict[str, Any] = Field(default_factory=dict)
    session_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


# ===============================================================
# ROLE AUDIT LOG (one row per role mutation)
# ===============================================================

class RoleAuditLogEntry(BaseModel):
    user_id: str                    # actor
    target_user_id: str
    action: RoleAction
    role_type: RoleType
    old_role: Optional[Role] = None
    new_role: Optional[Role] = None
    facility_id: Optional[str] = None
    reason: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
