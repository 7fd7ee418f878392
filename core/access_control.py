# core/access_control.py

"""
Access decisions: role capabilities first, conditional grants second,
and exactly one usage-log row per decision.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import pytz

from core.access_store import AccessStore
from core.conditions import evaluate_conditions
from core.config import settings
from core.errors import AccessControlError, InvalidConditionError
from core.logging_config import logger
from core.permissions import role_grants
from core.resolver import resolve_effective_role
from models.access import as_utc
from models.audit import PermissionUsageLogEntry
from models.decision import AccessDecision, RequestContext, RoleResolution
from models.enums import AccessMethod


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


class AccessController:
    """
    Evaluates access for one store.

    Args:
        store: backing AccessStore
        clock: returns the current time; injectable for tests
        tz: IANA zone for time windows (defaults to ACCESS_TIMEZONE)
    """

    def __init__(
        self,
        store: AccessStore,
        clock: Optional[Callable[[], datetime]] = None,
        tz: Optional[str] = None,
    ):
        self.store = store
        self.clock = clock or utc_clock
        self.timezone = pytz.timezone(tz or settings.ACCESS_TIMEZONE)

    # -----------------------------------------------------
    # Public API
    # -----------------------------------------------------
    def check_access(
        self,
        user_id: str,
        facility_id: Optional[str],
        permission_name: str,
        request_context: Optional[RequestContext] = None,
    ) -> AccessDecision:
        """
        Decide and record. Never raises: every failure becomes a denial
        whose cause is kept in the usage log.
        """
        context = request_context or RequestContext()
        now = self.clock()

        resolution = resolve_effective_role(self.store, user_id, facility_id)
        try:
            decision = self._decide(user_id, facility_id, permission_name, context, resolution, now)
        except Exception as e:
            logger.error(f"Access check failed for user {user_id} ({permission_name})", exc_info=True)
            decision = self._deny(
                user_id, facility_id, permission_name, resolution,
                {"failure": f"{e.__class__.__name__}: {e}"},
            )

        return self._record(decision, context, now)

    # -----------------------------------------------------
    # Decision
    # -----------------------------------------------------
    def _decide(
        self,
        user_id: str,
        facility_id: Optional[str],
        permission_name: str,
        context: RequestContext,
        resolution: RoleResolution,
        now: datetime,
    ) -> AccessDecision:
        if resolution.failed_closed:
            return self._deny(user_id, facility_id, permission_name, resolution, {"failure": resolution.failure})

        if role_grants(resolution.role, permission_name):
            method = AccessMethod.facility_role if resolution.via_override else AccessMethod.global_role
            return AccessDecision(
                user_id=user_id,
                facility_id=facility_id,
                permission_name=permission_name,
                granted=True,
                access_method=method,
                effective_role=resolution.role,
                via_override=resolution.via_override,
            )

        # Conditional grants are scoped to a facility
        if not facility_id:
            return self._deny(user_id, facility_id, permission_name, resolution, {})

        try:
            candidates = self.store.fetch_active_conditional_permissions(user_id, facility_id, permission_name)
        except AccessControlError as e:
            return self._deny(
                user_id, facility_id, permission_name, resolution,
                {"failure": f"{e.__class__.__name__}: {e.message}"},
            )

        local_now = as_utc(now).astimezone(self.timezone)
        evaluated: Dict[str, Any] = {}

        for permission in candidates:
            if not permission.is_in_effect(now):
                evaluated[permission.id] = {"expired": True}
                continue

            try:
                conditions = permission.parsed_conditions()
            except InvalidConditionError as e:
                logger.warning(f"Conditional permission {permission.id} has invalid conditions: {e.message}")
                evaluated[permission.id] = {"invalid": e.message}
                continue

            satisfied, met = evaluate_conditions(conditions, local_now, context.facility_id)
            if satisfied:
                return AccessDecision(
                    user_id=user_id,
                    facility_id=facility_id,
                    permission_name=permission_name,
                    granted=True,
                    access_method=AccessMethod.conditional,
                    effective_role=resolution.role,
                    via_override=resolution.via_override,
                    conditions_met={"permission_id": permission.id, **met},
                )
            evaluated[permission.id] = met

        return self._deny(
            user_id, facility_id, permission_name, resolution,
            {"evaluated": evaluated} if evaluated else {},
        )

    def _deny(
        self,
        user_id: str,
        facility_id: Optional[str],
        permission_name: str,
        resolution: RoleResolution,
        conditions_met: Dict[str, Any],
    ) -> AccessDecision:
        return AccessDecision(
            user_id=user_id,
            facility_id=facility_id,
            permission_name=permission_name,
            granted=False,
            access_method=AccessMethod.denied,
            effective_role=resolution.role,
            via_override=resolution.via_override,
            conditions_met=conditions_met,
        )

    # -----------------------------------------------------
    # Usage log
    # -----------------------------------------------------
    def _record(self, decision: AccessDecision, context: RequestContext, now: datetime) -> AccessDecision:
        entry = PermissionUsageLogEntry(
            user_id=decision.user_id,
            permission_name=decision.permission_name,
            resource_type=context.resource_type,
            resource_id=context.resource_id,
            facility_id=decision.facility_id,
            access_granted=decision.granted,
            access_method=decision.access_method,
            conditions_met=decision.conditions_met,
            session_id=context.session_id,
            created_at=now,
        )
        try:
            self.store.append_usage_log_entry(entry)
        except Exception as e:
            # A decision that cannot be audited is not granted.
            logger.error(f"Permission usage log write failed for user {decision.user_id}: {e}")
            if decision.granted:
                return decision.model_copy(update={
                    "granted": False,
                    "access_method": AccessMethod.denied,
                    "conditions_met": {**decision.conditions_met, "failure": "usage_log_unavailable"},
                })
        return decision
