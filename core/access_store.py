# core/access_store.py

"""
Persistence contract for the access-control core.

The core owns the semantics; implementations own schema and transport.
Every method either returns or raises an AccessControlError subclass
(ExternalStoreError for transport failures and timeouts).
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.access import ConditionalPermission, FacilityRoleOverride
from models.audit import PermissionUsageLogEntry, RoleAuditLogEntry
from models.enums import Role


class AccessStore(ABC):

    # -----------------------------------------------------
    # Global roles
    # -----------------------------------------------------
    @abstractmethod
    def fetch_global_role(self, user_id: str) -> Optional[Role]:
        """Return the user's global role, or None if the user does not exist."""

    @abstractmethod
    def update_global_role(self, user_id: str, role: Role) -> None:
        ...

    # -----------------------------------------------------
    # Facility overrides
    # -----------------------------------------------------
    @abstractmethod
    def fetch_active_facility_override(self, user_id: str, facility_id: str) -> Optional[FacilityRoleOverride]:
        """
        The single active override for the pair, or None.
        Raises InconsistentOverrideError when more than one is active.
        """

    @abstractmethod
    def fetch_facility_override(self, override_id: str) -> Optional[FacilityRoleOverride]:
        ...

    @abstractmethod
    def insert_facility_override(
        self, user_id: str, facility_id: str, role: Role, granted_by: Optional[str]
    ) -> FacilityRoleOverride:
        """Raises OverrideConflictError if an active override already exists."""

    @abstractmethod
    def set_facility_override_active(self, override_id: str, is_active: bool) -> None:
        ...

    @abstractmethod
    def discard_facility_override(self, override_id: str) -> None:
        """Remove a row that was never audited. Only used to roll back a failed assign."""

    @abstractmethod
    def list_facility_overrides(
        self, user_id: Optional[str] = None, facility_id: Optional[str] = None, active_only: bool = True
    ) -> List[FacilityRoleOverride]:
        ...

    # -----------------------------------------------------
    # Conditional permissions
    # -----------------------------------------------------
    @abstractmethod
    def fetch_active_conditional_permissions(
        self, user_id: str, facility_id: str, permission_name: str
    ) -> List[ConditionalPermission]:
        """Rows with is_active=true. Expiry is left to the evaluator."""

    @abstractmethod
    def fetch_conditional_permission(self, permission_id: str) -> Optional[ConditionalPermission]:
        ...

    @abstractmethod
    def insert_conditional_permission(
        self,
        user_id: str,
        facility_id: str,
        permission_name: str,
        conditions: Dict[str, Any],
        granted_by: Optional[str],
        expires_at: Optional[datetime],
    ) -> ConditionalPermission:
        ...

    @abstractmethod
    def set_conditional_permission_active(self, permission_id: str, is_active: bool) -> None:
        ...

    @abstractmethod
    def discard_conditional_permission(self, permission_id: str) -> None:
        """Rollback only, same as discard_facility_override."""

    @abstractmethod
    def list_conditional_permissions(
        self, user_id: Optional[str] = None, facility_id: Optional[str] = None, active_only: bool = True
    ) -> List[ConditionalPermission]:
        ...

    # -----------------------------------------------------
    # Append-only logs
    # -----------------------------------------------------
    @abstractmethod
    def append_audit_log_entry(self, entry: RoleAuditLogEntry) -> None:
        ...

    @abstractmethod
    def append_usage_log_entry(self, entry: PermissionUsageLogEntry) -> None:
        ...

    @abstractmethod
    def list_audit_log(
        self, target_user_id: Optional[str] = None, facility_id: Optional[str] = None, limit: int = 100
    ) -> List[RoleAuditLogEntry]:
        ...

    @abstractmethod
    def list_usage_log(
        self, user_id: Optional[str] = None, facility_id: Optional[str] = None, limit: int = 100
    ) -> List[PermissionUsageLogEntry]:
        ...

    # -----------------------------------------------------
    # Health
    # -----------------------------------------------------
    def ping(self) -> Dict[str, Any]:
        return {"service": self.__class__.__name__, "status": "ok"}
