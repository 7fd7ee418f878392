# core/resolver.py

from typing import Optional

from core.access_store import AccessStore
from core.errors import AccessControlError
from core.logging_config import logger
from core.roles import LOWEST_ROLE
from models.decision import RoleResolution
from models.enums import Role


def _fail_closed(user_id: str, facility_id: Optional[str], reason: str) -> RoleResolution:
    logger.warning(
        f"Effective role for user {user_id} at facility {facility_id} failed closed to {LOWEST_ROLE}: {reason}"
    )
    return RoleResolution(role=LOWEST_ROLE, failure=reason)


def resolve_effective_role(
    store: AccessStore, user_id: str, facility_id: Optional[str] = None
) -> RoleResolution:
    """
    Resolve the single role that governs a (user, facility) decision.

    - No facility → the user's global role.
    - Active override at that exact facility → the override's role,
      even when it is lower than the global role.
    - The profile is read first: a user without one gets no override.
    - Any store failure, unknown user, invalid role or more than one active
      override → viewer with `failure` set. Never raises.
    """
    try:
        global_role = store.fetch_global_role(user_id)
        if global_role is None:
            return _fail_closed(user_id, facility_id, "user_not_found")

        if facility_id:
            override = store.fetch_active_facility_override(user_id, facility_id)
            if override is not None:
                return RoleResolution(role=override.role, via_override=True, override_id=override.id)

    except AccessControlError as e:
        return _fail_closed(user_id, facility_id, f"{e.__class__.__name__}: {e.message}")
    except Exception as e:
        logger.error(f"Unexpected error resolving role for user {user_id}", exc_info=True)
        return _fail_closed(user_id, facility_id, f"{e.__class__.__name__}: {e}")

    return RoleResolution(role=global_role)


def effective_role(store: AccessStore, user_id: str, facility_id: Optional[str] = None) -> Role:
    return resolve_effective_role(store, user_id, facility_id).role
