# core/role_admin.py

"""
Role and permission mutations.

Each mutation is a pair: the write and its role_audit_log entry.
If the audit entry cannot be written the write is undone and
ExternalStoreError is raised. Seniority is re-read on every call.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from core.access_control import utc_clock
from core.access_store import AccessStore
from core.errors import (
    ExternalStoreError,
    InsufficientSeniorityError,
    InvalidConditionError,
    OverrideConflictError,
    OverrideNotFoundError,
    PermissionNotFoundError,
    UserNotFoundError,
)
from core.logging_config import logger
from core.permissions import role_grants
from core.roles import ROLE_ADMIN_MIN_ROLE, can_manage_roles, rank_of, to_role
from models.access import ConditionalPermission, FacilityRoleOverride, as_utc, conditions_to_json, parse_conditions
from models.audit import RoleAuditLogEntry
from models.decision import BulkRoleAssignmentResult
from models.enums import Capability, Role, RoleAction, RoleType


class RoleAdministrator:

    def __init__(self, store: AccessStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or utc_clock

    # -----------------------------------------------------
    # Authority
    # -----------------------------------------------------
    def actor_role(self, acting_user_id: str, facility_id: Optional[str] = None) -> Role:
        """
        Role the actor holds for this mutation: the facility override when
        one is active there, otherwise the global role. Store errors propagate.
        """
        if facility_id:
            override = self.store.fetch_active_facility_override(acting_user_id, facility_id)
            if override is not None:
                return override.role

        role = self.store.fetch_global_role(acting_user_id)
        if role is None:
            raise InsufficientSeniorityError(f"Acting user {acting_user_id} has no profile")
        return role

    def _holdings(self, user_id: str, facility_id: Optional[str]) -> Tuple[Role, Optional[FacilityRoleOverride]]:
        role = self.store.fetch_global_role(user_id)
        if role is None:
            raise UserNotFoundError(f"User {user_id} not found")
        override = self.store.fetch_active_facility_override(user_id, facility_id) if facility_id else None
        return role, override

    def target_role(self, user_id: str, facility_id: Optional[str] = None) -> Role:
        """
        Role the target currently holds: the facility override when one is
        active there, otherwise the global role. Unknown users raise
        UserNotFoundError.
        """
        role, override = self._holdings(user_id, facility_id)
        return override.role if override is not None else role

    def _require_authority(self, actor_role: Role, *roles: Optional[Role]) -> None:
        if not can_manage_roles(actor_role):
            raise InsufficientSeniorityError(
                f"Role '{actor_role}' may not change roles; '{ROLE_ADMIN_MIN_ROLE}' or above required"
            )
        # Actors only touch roles strictly below their own
        for role in roles:
            if role is not None and rank_of(role) >= rank_of(actor_role):
                raise InsufficientSeniorityError(
                    f"Role '{actor_role}' may not assign or change role '{role}'"
                )

    # -----------------------------------------------------
    # Write + audit
    # -----------------------------------------------------
    def _audit_or_rollback(self, entry: RoleAuditLogEntry, rollback: Callable[[], None], operation: str) -> None:
        try:
            self.store.append_audit_log_entry(entry)
        except Exception as e:
            logger.error(f"{operation}: audit log write failed, rolling back: {e}")
            try:
                rollback()
            except Exception:
                logger.critical(f"{operation}: rollback failed, change persisted without audit entry", exc_info=True)
            raise ExternalStoreError(f"{operation} rolled back: role audit log unavailable") from e

    # -----------------------------------------------------
    # Global role
    # -----------------------------------------------------
    def mutate_global_role(
        self,
        user_id: str,
        new_role: Union[Role, str],
        acting_user_id: str,
        reason: Optional[str] = None,
    ) -> Optional[RoleAuditLogEntry]:
        """
        Change a user's global role. Returns the audit entry, or None when
        the user already holds the role (nothing written).
        """
        new_role = to_role(new_role)
        actor = self.actor_role(acting_user_id)
        self._require_authority(actor, new_role)

        old_role = self.store.fetch_global_role(user_id)
        if old_role is None:
            raise UserNotFoundError(f"User {user_id} not found")
        self._require_authority(actor, old_role)

        if old_role == new_role:
            return None

        self.store.update_global_role(user_id, new_role)

        entry = RoleAuditLogEntry(
            user_id=acting_user_id,
            target_user_id=user_id,
            action=RoleAction.global_role_change,
            role_type=RoleType.global_,
            old_role=old_role,
            new_role=new_role,
            reason=reason,
            metadata={"source": "role_admin"},
            created_at=self.clock(),
        )
        self._audit_or_rollback(
            entry,
            lambda: self.store.update_global_role(user_id, old_role),
            "Global role change",
        )
        logger.info(f"Global role of {user_id} changed {old_role} -> {new_role} by {acting_user_id}")
        return entry

    # -----------------------------------------------------
    # Facility overrides
    # -----------------------------------------------------
    def assign_facility_override(
        self,
        user_id: str,
        facility_id: str,
        role: Union[Role, str],
        granted_by: str,
        reason: Optional[str] = None,
    ) -> FacilityRoleOverride:
        role = to_role(role)
        actor = self.actor_role(granted_by, facility_id)
        self._require_authority(actor, role)

        current, existing = self._holdings(user_id, facility_id)
        if existing is not None:
            raise OverrideConflictError(
                f"User {user_id} already has an active role at facility {facility_id}; revoke it first"
            )
        # The target's current role must also be below the actor's
        self._require_authority(actor, current)

        override = self.store.insert_facility_override(user_id, facility_id, role, granted_by)

        entry = RoleAuditLogEntry(
            user_id=granted_by,
            target_user_id=user_id,
            action=RoleAction.assign,
            role_type=RoleType.facility_specific,
            new_role=role,
            facility_id=facility_id,
            reason=reason,
            metadata={"override_id": override.id},
            created_at=self.clock(),
        )
        self._audit_or_rollback(
            entry,
            lambda: self.store.discard_facility_override(override.id),
            "Facility role assignment",
        )
        logger.info(f"Facility role {role} assigned to {user_id} at {facility_id} by {granted_by}")
        return override

    def revoke_facility_override(
        self, override_id: str, acting_user_id: str, reason: Optional[str] = None
    ) -> FacilityRoleOverride:
        override = self.store.fetch_facility_override(override_id)
        if override is None or not override.is_active:
            raise OverrideNotFoundError(f"Active facility role {override_id} not found")

        self._require_authority(self.actor_role(acting_user_id, override.facility_id), override.role)

        self.store.set_facility_override_active(override_id, False)

        entry = RoleAuditLogEntry(
            user_id=acting_user_id,
            target_user_id=override.user_id,
            action=RoleAction.revoke,
            role_type=RoleType.facility_specific,
            old_role=override.role,
            facility_id=override.facility_id,
            reason=reason,
            metadata={"override_id": override_id},
            created_at=self.clock(),
        )
        self._audit_or_rollback(
            entry,
            lambda: self.store.set_facility_override_active(override_id, True),
            "Facility role revocation",
        )
        logger.info(f"Facility role {override_id} revoked by {acting_user_id}")
        return override.model_copy(update={"is_active": False})

    def bulk_assign_facility_overrides(
        self,
        user_ids: List[str],
        facility_id: str,
        role: Union[Role, str],
        granted_by: str,
        reason: Optional[str] = None,
    ) -> BulkRoleAssignmentResult:
        """
        Assign one role at one facility to many users. Users that already
        hold an active role there are skipped. All-or-nothing for the rest,
        with a single audit entry for the batch. Every target is checked
        before anything is written.
        """
        role = to_role(role)
        actor = self.actor_role(granted_by, facility_id)
        self._require_authority(actor, role)

        assigned: List[FacilityRoleOverride] = []
        skipped: List[str] = []
        pending: List[str] = []

        for user_id in dict.fromkeys(user_ids):
            current, existing = self._holdings(user_id, facility_id)
            if existing is not None:
                skipped.append(user_id)
                continue
            self._require_authority(actor, current)
            pending.append(user_id)

        def rollback():
            for override in assigned:
                self.store.discard_facility_override(override.id)

        for user_id in pending:
            try:
                assigned.append(self.store.insert_facility_override(user_id, facility_id, role, granted_by))
            except OverrideConflictError:
                skipped.append(user_id)
            except Exception:
                logger.error(f"Bulk assignment at {facility_id} failed on {user_id}, rolling back {len(assigned)}")
                rollback()
                raise

        result = BulkRoleAssignmentResult(
            assigned_count=len(assigned),
            assigned_user_ids=[o.user_id for o in assigned],
            failed_assignments=skipped,
        )
        if not assigned:
            return result

        entry = RoleAuditLogEntry(
            user_id=granted_by,
            target_user_id=assigned[0].user_id,
            action=RoleAction.bulk_assign,
            role_type=RoleType.facility_specific,
            new_role=role,
            facility_id=facility_id,
            reason=reason or f"Bulk assigned to {len(assigned)} users",
            metadata={
                "user_ids": result.assigned_user_ids,
                "total_users": len(assigned),
                "skipped_user_ids": skipped,
                "override_ids": [o.id for o in assigned],
            },
            created_at=self.clock(),
        )
        self._audit_or_rollback(entry, rollback, "Bulk facility role assignment")
        logger.info(f"Bulk assigned {role} at {facility_id} to {len(assigned)} users by {granted_by}")
        return result

    # -----------------------------------------------------
    # Conditional permissions
    # -----------------------------------------------------
    def grant_conditional_permission(
        self,
        user_id: str,
        facility_id: str,
        permission_name: str,
        conditions: Any,
        granted_by: str,
        expires_at: Optional[datetime] = None,
        reason: Optional[str] = None,
    ) -> ConditionalPermission:
        """
        Grant one capability at one facility under conditions.

        The grantor must hold the capability at that facility, outrank the
        target there, and may not grant to themselves.
        """
        if not permission_name or not permission_name.strip():
            raise InvalidConditionError("permission_name is required")
        permission_name = permission_name.strip()
        if permission_name not in Capability.list():
            raise InvalidConditionError(f"Unknown permission: {permission_name!r}")
        parsed = parse_conditions(conditions)
        if expires_at is not None and as_utc(expires_at) <= as_utc(self.clock()):
            raise InvalidConditionError("expires_at is already in the past")

        actor = self.actor_role(granted_by, facility_id)
        self._require_authority(actor)
        if user_id == granted_by:
            raise InsufficientSeniorityError("Conditional permissions cannot be self-granted")
        self._require_authority(actor, self.target_role(user_id, facility_id))
        if not role_grants(actor, permission_name):
            raise InsufficientSeniorityError(
                f"Role '{actor}' does not hold '{permission_name}' and cannot grant it"
            )

        stored_conditions = conditions_to_json(parsed)
        permission = self.store.insert_conditional_permission(
            user_id, facility_id, permission_name, stored_conditions, granted_by, expires_at,
        )

        metadata: Dict[str, Any] = {
            "permission_id": permission.id,
            "permission_name": permission.permission_name,
            "conditions": stored_conditions,
            "expires_at": expires_at.isoformat() if expires_at else None,
        }
        entry = RoleAuditLogEntry(
            user_id=granted_by,
            target_user_id=user_id,
            action=RoleAction.grant_permission,
            role_type=RoleType.facility_specific,
            facility_id=facility_id,
            reason=reason,
            metadata=metadata,
            created_at=self.clock(),
        )
        self._audit_or_rollback(
            entry,
            lambda: self.store.discard_conditional_permission(permission.id),
            "Conditional permission grant",
        )
        logger.info(f"Conditional permission {permission.permission_name} granted to {user_id} at {facility_id}")
        return permission

    def revoke_conditional_permission(
        self, permission_id: str, acting_user_id: str, reason: Optional[str] = None
    ) -> ConditionalPermission:
        permission = self.store.fetch_conditional_permission(permission_id)
        if permission is None or not permission.is_active:
            raise PermissionNotFoundError(f"Active conditional permission {permission_id} not found")

        self._require_authority(self.actor_role(acting_user_id, permission.facility_id))

        self.store.set_conditional_permission_active(permission_id, False)

        entry = RoleAuditLogEntry(
            user_id=acting_user_id,
            target_user_id=permission.user_id,
            action=RoleAction.revoke_permission,
            role_type=RoleType.facility_specific,
            facility_id=permission.facility_id,
            reason=reason,
            metadata={"permission_id": permission_id, "permission_name": permission.permission_name},
            created_at=self.clock(),
        )
        self._audit_or_rollback(
            entry,
            lambda: self.store.set_conditional_permission_active(permission_id, True),
            "Conditional permission revocation",
        )
        return permission.model_copy(update={"is_active": False})
