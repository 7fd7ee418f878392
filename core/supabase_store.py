# core/supabase_store.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import Client

from core.access_store import AccessStore
from core.config import settings
from core.errors import ExternalStoreError, InconsistentOverrideError, UnknownRoleError, store_error
from core.roles import from_backend_role, to_backend_role
from models.access import ConditionalPermission, FacilityRoleOverride
from models.audit import PermissionUsageLogEntry, RoleAuditLogEntry
from models.enums import InvalidRolePolicy, Role


# Tables owned by the hosted backend
PROFILES = "profiles"
FACILITY_ROLES = "facility_specific_roles"
CONDITIONAL_PERMISSIONS = "conditional_permissions"
USAGE_LOG = "permission_usage_log"
AUDIT_LOG = "role_audit_log"


class SupabaseAccessStore(AccessStore):
    """
    AccessStore over Supabase tables.

    The partial unique index on facility_specific_roles (user_id, facility_id)
    WHERE is_active backs the one-active-override invariant; a violation
    surfaces as OverrideConflictError. Client timeouts come from the client
    options (see core.supabase_client).
    """

    def __init__(self, client: Optional[Client], role_policy: Optional[InvalidRolePolicy] = None):
        self.client = client
        self.role_policy = role_policy or settings.INVALID_ROLE_POLICY

    # -----------------------------------------------------
    # Helpers
    # -----------------------------------------------------
    def _table(self, name: str):
        if self.client is None:
            raise ExternalStoreError("Supabase client not configured")
        return self.client.table(name)

    def _execute(self, query, operation: str) -> List[Dict[str, Any]]:
        try:
            result = query.execute()
        except Exception as e:
            raise store_error(e, operation) from e
        return result.data or []

    def _to_override(self, row: Dict[str, Any]) -> FacilityRoleOverride:
        try:
            return FacilityRoleOverride(**{**row, "role": from_backend_role(row.get("role"), self.role_policy)})
        except (KeyError, TypeError, ValueError) as e:
            raise ExternalStoreError(f"Malformed facility role row {row.get('id')}: {e}") from e

    def _to_permission(self, row: Dict[str, Any]) -> ConditionalPermission:
        try:
            return ConditionalPermission(**row)
        except (TypeError, ValueError) as e:
            raise ExternalStoreError(f"Malformed conditional permission row {row.get('id')}: {e}") from e

    def _to_audit_entry(self, row: Dict[str, Any]) -> RoleAuditLogEntry:
        try:
            data = {**row, "metadata": row.get("metadata") or {}}
            for key in ("old_role", "new_role"):
                if data.get(key):
                    data[key] = from_backend_role(data[key], self.role_policy)
            return RoleAuditLogEntry(**data)
        except (TypeError, ValueError, UnknownRoleError) as e:
            raise ExternalStoreError(f"Malformed role audit row {row.get('id')}: {e}") from e

    def _to_usage_entry(self, row: Dict[str, Any]) -> PermissionUsageLogEntry:
        try:
            return PermissionUsageLogEntry(**{**row, "conditions_met": row.get("conditions_met") or {}})
        except (TypeError, ValueError) as e:
            raise ExternalStoreError(f"Malformed permission usage row {row.get('id')}: {e}") from e

    # -----------------------------------------------------
    # Global roles
    # -----------------------------------------------------
    def fetch_global_role(self, user_id: str) -> Optional[Role]:
        rows = self._execute(
            self._table(PROFILES).select("role").eq("id", user_id).limit(1),
            "Failed to fetch global role",
        )
        if not rows:
            return None
        return from_backend_role(rows[0].get("role"), self.role_policy)

    def update_global_role(self, user_id: str, role: Role) -> None:
        rows = self._execute(
            self._table(PROFILES).update({"role": to_backend_role(role)}).eq("id", user_id),
            "Failed to update global role",
        )
        if not rows:
            raise ExternalStoreError(f"Failed to update global role: profile {user_id} not updated")

    # -----------------------------------------------------
    # Facility overrides
    # -----------------------------------------------------
    def fetch_active_facility_override(self, user_id: str, facility_id: str) -> Optional[FacilityRoleOverride]:
        rows = self._execute(
            self._table(FACILITY_ROLES)
            .select("*")
            .eq("user_id", user_id)
            .eq("facility_id", facility_id)
            .eq("is_active", True)
            .limit(2),
            "Failed to fetch facility role",
        )
        if len(rows) > 1:
            raise InconsistentOverrideError(user_id, facility_id, len(rows))
        return self._to_override(rows[0]) if rows else None

    def fetch_facility_override(self, override_id: str) -> Optional[FacilityRoleOverride]:
        rows = self._execute(
            self._table(FACILITY_ROLES).select("*").eq("id", override_id).limit(1),
            "Failed to fetch facility role",
        )
        return self._to_override(rows[0]) if rows else None

    def insert_facility_override(
        self, user_id: str, facility_id: str, role: Role, granted_by: Optional[str]
    ) -> FacilityRoleOverride:
        rows = self._execute(
            self._table(FACILITY_ROLES).insert({
                "user_id": user_id,
                "facility_id": facility_id,
                "role": to_backend_role(role),
                "granted_by": granted_by,
                "is_active": True,
            }),
            "Failed to assign facility role",
        )
        if not rows:
            raise ExternalStoreError("Failed to assign facility role: no row returned")
        return self._to_override(rows[0])

    def set_facility_override_active(self, override_id: str, is_active: bool) -> None:
        self._execute(
            self._table(FACILITY_ROLES).update({"is_active": is_active}).eq("id", override_id),
            "Failed to update facility role",
        )

    def discard_facility_override(self, override_id: str) -> None:
        self._execute(
            self._table(FACILITY_ROLES).delete().eq("id", override_id),
            "Failed to roll back facility role",
        )

    def list_facility_overrides(
        self, user_id: Optional[str] = None, facility_id: Optional[str] = None, active_only: bool = True
    ) -> List[FacilityRoleOverride]:
        query = self._table(FACILITY_ROLES).select("*")
        if user_id:
            query = query.eq("user_id", user_id)
        if facility_id:
            query = query.eq("facility_id", facility_id)
        if active_only:
            query = query.eq("is_active", True)
        rows = self._execute(query.order("granted_at", desc=True), "Failed to list facility roles")
        return [self._to_override(row) for row in rows]

    # -----------------------------------------------------
    # Conditional permissions
    # -----------------------------------------------------
    def fetch_active_conditional_permissions(
        self, user_id: str, facility_id: str, permission_name: str
    ) -> List[ConditionalPermission]:
        rows = self._execute(
            self._table(CONDITIONAL_PERMISSIONS)
            .select("*")
            .eq("user_id", user_id)
            .eq("facility_id", facility_id)
            .eq("permission_name", permission_name)
            .eq("is_active", True),
            "Failed to fetch conditional permissions",
        )
        return [self._to_permission(row) for row in rows]

    def fetch_conditional_permission(self, permission_id: str) -> Optional[ConditionalPermission]:
        rows = self._execute(
            self._table(CONDITIONAL_PERMISSIONS).select("*").eq("id", permission_id).limit(1),
            "Failed to fetch conditional permission",
        )
        return self._to_permission(rows[0]) if rows else None

    def insert_conditional_permission(
        self,
        user_id: str,
        facility_id: str,
        permission_name: str,
        conditions: Dict[str, Any],
        granted_by: Optional[str],
        expires_at: Optional[datetime],
    ) -> ConditionalPermission:
        rows = self._execute(
            self._table(CONDITIONAL_PERMISSIONS).insert({
                "user_id": user_id,
                "facility_id": facility_id,
                "permission_name": permission_name,
                "conditions": conditions,
                "granted_by": granted_by,
                "expires_at": expires_at.isoformat() if expires_at else None,
                "is_active": True,
            }),
            "Failed to grant conditional permission",
        )
        if not rows:
            raise ExternalStoreError("Failed to grant conditional permission: no row returned")
        return self._to_permission(rows[0])

    def set_conditional_permission_active(self, permission_id: str, is_active: bool) -> None:
        self._execute(
            self._table(CONDITIONAL_PERMISSIONS).update({"is_active": is_active}).eq("id", permission_id),
            "Failed to update conditional permission",
        )

    def discard_conditional_permission(self, permission_id: str) -> None:
        self._execute(
            self._table(CONDITIONAL_PERMISSIONS).delete().eq("id", permission_id),
            "Failed to roll back conditional permission",
        )

    def list_conditional_permissions(
        self, user_id: Optional[str] = None, facility_id: Optional[str] = None, active_only: bool = True
    ) -> List[ConditionalPermission]:
        query = self._table(CONDITIONAL_PERMISSIONS).select("*")
        if user_id:
            query = query.eq("user_id", user_id)
        if facility_id:
            query = query.eq("facility_id", facility_id)
        if active_only:
            query = query.eq("is_active", True)
        rows = self._execute(query.order("created_at", desc=True), "Failed to list conditional permissions")
        return [self._to_permission(row) for row in rows]

    # -----------------------------------------------------
    # Append-only logs
    # -----------------------------------------------------
    def append_audit_log_entry(self, entry: RoleAuditLogEntry) -> None:
        data = entry.model_dump(mode="json")
        data["old_role"] = to_backend_role(entry.old_role) if entry.old_role else None
        data["new_role"] = to_backend_role(entry.new_role) if entry.new_role else None
        self._execute(self._table(AUDIT_LOG).insert(data), "Failed to write role audit log")

    def append_usage_log_entry(self, entry: PermissionUsageLogEntry) -> None:
        self._execute(
            self._table(USAGE_LOG).insert(entry.model_dump(mode="json")),
            "Failed to write permission usage log",
        )

    def list_audit_log(
        self, target_user_id: Optional[str] = None, facility_id: Optional[str] = None, limit: int = 100
    ) -> List[RoleAuditLogEntry]:
        query = self._table(AUDIT_LOG).select("*")
        if target_user_id:
            query = query.eq("target_user_id", target_user_id)
        if facility_id:
            query = query.eq("facility_id", facility_id)
        rows = self._execute(query.order("created_at", desc=True).limit(limit), "Failed to read role audit log")
        return [self._to_audit_entry(row) for row in rows]

    def list_usage_log(
        self, user_id: Optional[str] = None, facility_id: Optional[str] = None, limit: int = 100
    ) -> List[PermissionUsageLogEntry]:
        query = self._table(USAGE_LOG).select("*")
        if user_id:
            query = query.eq("user_id", user_id)
        if facility_id:
            query = query.eq("facility_id", facility_id)
        rows = self._execute(query.order("created_at", desc=True).limit(limit), "Failed to read permission usage log")
        return [self._to_usage_entry(row) for row in rows]

    # -----------------------------------------------------
    # Health
    # -----------------------------------------------------
    def ping(self) -> Dict[str, Any]:
        """
        Simple connectivity check: one-row select per table.
        Does NOT probe RPC functions.
        """
        if self.client is None:
            return {"service": "Supabase", "status": "not_configured"}

        results = {}
        for table in (PROFILES, FACILITY_ROLES, CONDITIONAL_PERMISSIONS, USAGE_LOG, AUDIT_LOG):
            try:
                res = self.client.table(table).select("id").limit(1).execute()
                results[table] = {"status": "ok", "rows_found": len(res.data or [])}
            except Exception as err:
                results[table] = {"status": "error", "detail": str(err)}

        status = "ok" if all(r["status"] == "ok" for r in results.values()) else "degraded"
        return {"service": "Supabase", "status": status, "tables": results}
