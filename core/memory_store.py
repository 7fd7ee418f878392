# core/memory_store.py

"""
In-memory AccessStore.

Used for local development (ACCESS_STORE_BACKEND=memory) and tests.
Enforces the same invariants as the database constraints:
one active override per (user, facility), append-only logs.
"""

import uuid
from datetime import datetime
from threading import Lock
from typing import Any, Dict, List, Optional, Union

from core.access_store import AccessStore
from core.config import settings
from core.errors import InconsistentOverrideError, OverrideConflictError
from core.roles import from_backend_role, to_backend_role
from models.access import ConditionalPermission, FacilityRoleOverride
from models.audit import PermissionUsageLogEntry, RoleAuditLogEntry, utc_now
from models.enums import InvalidRolePolicy, Role


class InMemoryAccessStore(AccessStore):
    """
    Thread-safe for concurrent access.
    Roles are kept as backend strings so reads go through the same
    role interpretation as the Supabase store.
    """

    def __init__(self, role_policy: Optional[InvalidRolePolicy] = None):
        self.role_policy = role_policy or settings.INVALID_ROLE_POLICY
        self._lock = Lock()
        self._profiles: Dict[str, str] = {}
        self._overrides: Dict[str, Dict[str, Any]] = {}
        self._permissions: Dict[str, ConditionalPermission] = {}
        self._audit_log: List[RoleAuditLogEntry] = []
        self._usage_log: List[PermissionUsageLogEntry] = []

    # -----------------------------------------------------
    # Seeding (dev fixtures / tests)
    # -----------------------------------------------------
    def add_user(self, user_id: str, role: Union[Role, str]) -> None:
        """
        Register a profile. `role` is stored verbatim so invalid
        backend values can be represented.
        """
        with self._lock:
            self._profiles[user_id] = role.value if isinstance(role, Role) else role

    def add_override_row(self, row: Dict[str, Any]) -> str:
        """Insert a raw facility_specific_roles row without any checks."""
        row = dict(row)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("granted_at", utc_now())
        row.setdefault("is_active", True)
        if isinstance(row.get("role"), Role):
            row["role"] = to_backend_role(row["role"])
        with self._lock:
            self._overrides[row["id"]] = row
        return row["id"]

    def add_conditional_permission(self, permission: ConditionalPermission) -> None:
        with self._lock:
            self._permissions[permission.id] = permission

    # -----------------------------------------------------
    # Global roles
    # -----------------------------------------------------
    def fetch_global_role(self, user_id: str) -> Optional[Role]:
        with self._lock:
            raw = self._profiles.get(user_id)
        if raw is None:
            return None
        return from_backend_role(raw, self.role_policy)

    def update_global_role(self, user_id: str, role: Role) -> None:
        with self._lock:
            self._profiles[user_id] = to_backend_role(role)

    # -----------------------------------------------------
    # Facility overrides
    # -----------------------------------------------------
    def _to_override(self, row: Dict[str, Any]) -> FacilityRoleOverride:
        return FacilityRoleOverride(**{**row, "role": from_backend_role(row["role"], self.role_policy)})

    def _active_rows(self, user_id: str, facility_id: str) -> List[Dict[str, Any]]:
        return [
            row for row in self._overrides.values()
            if row["user_id"] == user_id and row["facility_id"] == facility_id and row["is_active"]
        ]

    def fetch_active_facility_override(self, user_id: str, facility_id: str) -> Optional[FacilityRoleOverride]:
        with self._lock:
            rows = self._active_rows(user_id, facility_id)
        if len(rows) > 1:
            raise InconsistentOverrideError(user_id, facility_id, len(rows))
        return self._to_override(rows[0]) if rows else None

    def fetch_facility_override(self, override_id: str) -> Optional[FacilityRoleOverride]:
        with self._lock:
            row = self._overrides.get(override_id)
        return self._to_override(row) if row else None

    def insert_facility_override(
        self, user_id: str, facility_id: str, role: Role, granted_by: Optional[str]
    ) -> FacilityRoleOverride:
        row = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "facility_id": facility_id,
            "role": to_backend_role(role),
            "granted_by": granted_by,
            "granted_at": utc_now(),
            "is_active": True,
        }
        with self._lock:
            if self._active_rows(user_id, facility_id):
                raise OverrideConflictError(
                    f"User {user_id} already has an active role at facility {facility_id}"
                )
            self._overrides[row["id"]] = row
        return self._to_override(row)

    def set_facility_override_active(self, override_id: str, is_active: bool) -> None:
        with self._lock:
            row = self._overrides[override_id]
            if is_active and any(r["id"] != override_id for r in self._active_rows(row["user_id"], row["facility_id"])):
                raise OverrideConflictError(
                    f"User {row['user_id']} already has an active role at facility {row['facility_id']}"
                )
            row["is_active"] = is_active

    def discard_facility_override(self, override_id: str) -> None:
        with self._lock:
            self._overrides.pop(override_id, None)

    def list_facility_overrides(
        self, user_id: Optional[str] = None, facility_id: Optional[str] = None, active_only: bool = True
    ) -> List[FacilityRoleOverride]:
        with self._lock:
            rows = [
                row for row in self._overrides.values()
                if (user_id is None or row["user_id"] == user_id)
                and (facility_id is None or row["facility_id"] == facility_id)
                and (row["is_active"] or not active_only)
            ]
        return [self._to_override(row) for row in rows]

    # -----------------------------------------------------
    # Conditional permissions
    # -----------------------------------------------------
    def fetch_active_conditional_permissions(
        self, user_id: str, facility_id: str, permission_name: str
    ) -> List[ConditionalPermission]:
        with self._lock:
            return [
                p.model_copy() for p in self._permissions.values()
                if p.user_id == user_id
                and p.facility_id == facility_id
                and p.permission_name == permission_name
                and p.is_active
            ]

    def fetch_conditional_permission(self, permission_id: str) -> Optional[ConditionalPermission]:
        with self._lock:
            permission = self._permissions.get(permission_id)
        return permission.model_copy() if permission else None

    def insert_conditional_permission(
        self,
        user_id: str,
        facility_id: str,
        permission_name: str,
        conditions: Dict[str, Any],
        granted_by: Optional[str],
        expires_at: Optional[datetime],
    ) -> ConditionalPermission:
        permission = ConditionalPermission(
            id=str(uuid.uuid4()),
            user_id=user_id,
            facility_id=facility_id,
            permission_name=permission_name,
            conditions=conditions,
            granted_by=granted_by,
            expires_at=expires_at,
            created_at=utc_now(),
        )
        with self._lock:
            self._permissions[permission.id] = permission
        return permission.model_copy()

    def set_conditional_permission_active(self, permission_id: str, is_active: bool) -> None:
        with self._lock:
            self._permissions[permission_id].is_active = is_active

    def discard_conditional_permission(self, permission_id: str) -> None:
        with self._lock:
            self._permissions.pop(permission_id, None)

    def list_conditional_permissions(
        self, user_id: Optional[str] = None, facility_id: Optional[str] = None, active_only: bool = True
    ) -> List[ConditionalPermission]:
        with self._lock:
            return [
                p.model_copy() for p in self._permissions.values()
                if (user_id is None or p.user_id == user_id)
                and (facility_id is None or p.facility_id == facility_id)
                and (p.is_active or not active_only)
            ]

    # -----------------------------------------------------
    # Append-only logs
    # -----------------------------------------------------
    def append_audit_log_entry(self, entry: RoleAuditLogEntry) -> None:
        with self._lock:
            self._audit_log.append(entry.model_copy(deep=True))

    def append_usage_log_entry(self, entry: PermissionUsageLogEntry) -> None:
        with self._lock:
            self._usage_log.append(entry.model_copy(deep=True))

    def list_audit_log(
        self, target_user_id: Optional[str] = None, facility_id: Optional[str] = None, limit: int = 100
    ) -> List[RoleAuditLogEntry]:
        with self._lock:
            entries = [
                e for e in reversed(self._audit_log)
                if (target_user_id is None or e.target_user_id == target_user_id)
                and (facility_id is None or e.facility_id == facility_id)
            ]
        return entries[:limit]

    def list_usage_log(
        self, user_id: Optional[str] = None, facility_id: Optional[str] = None, limit: int = 100
    ) -> List[PermissionUsageLogEntry]:
        with self._lock:
            entries = [
                e for e in reversed(self._usage_log)
                if (user_id is None or e.user_id == user_id)
                and (facility_id is None or e.facility_id == facility_id)
            ]
        return entries[:limit]

    def ping(self) -> Dict[str, Any]:
        with self._lock:
            counts = {
                "profiles": len(self._profiles),
                "facility_specific_roles": len(self._overrides),
                "conditional_permissions": len(self._permissions),
            }
        return {"service": "memory", "status": "ok", "tables": counts}
