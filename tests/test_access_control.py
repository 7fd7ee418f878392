# tests/test_access_control.py

"""
Tests for access decisions and the permission usage log.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from core.access_control import AccessController
from core.errors import ExternalStoreError
from models.access import ConditionalPermission
from models.decision import RequestContext
from models.enums import AccessMethod, Role

FACILITY = "facility-001"
OTHER_FACILITY = "facility-002"

# Tuesday / Saturday, 14:00 UTC
TUESDAY_2PM = datetime(2026, 10, 20, 14, 0, tzinfo=timezone.utc)
SATURDAY_2PM = datetime(2026, 10, 24, 14, 0, tzinfo=timezone.utc)

WEEKDAY_OFFICE_HOURS = {
    "time_windows": [{"start_hour": 9, "end_hour": 17, "allowed_days": [1, 2, 3, 4, 5]}],
}


def add_permission(store, user_id="viewer-user", permission_name="exportData", conditions=None, **extra):
    permission = ConditionalPermission(
        id=str(uuid.uuid4()),
        user_id=user_id,
        facility_id=extra.pop("facility_id", FACILITY),
        permission_name=permission_name,
        conditions=conditions,
        **extra,
    )
    store.add_conditional_permission(permission)
    return permission


# -----------------------------------------------------
# End-to-end scenarios
# -----------------------------------------------------
def test_global_role_grants_capability(store, controller):
    decision = controller.check_access("officer-user", FACILITY, "createProducts")

    assert decision.granted is True
    assert decision.access_method == AccessMethod.global_role
    assert decision.effective_role == Role.facility_officer


def test_lower_override_removes_global_capability(store, controller):
    store.add_override_row({"user_id": "national-user", "facility_id": FACILITY, "role": Role.viewer})

    decision = controller.check_access("national-user", FACILITY, "manageUsers")

    assert decision.granted is False
    assert decision.access_method == AccessMethod.denied
    assert decision.effective_role == Role.viewer
    assert decision.via_override is True


def test_conditional_time_window(store, controller, clock):
    permission = add_permission(store, conditions=WEEKDAY_OFFICE_HOURS)

    clock.now = TUESDAY_2PM
    granted = controller.check_access("viewer-user", FACILITY, "exportData")
    assert granted.granted is True
    assert granted.access_method == AccessMethod.conditional
    assert granted.conditions_met["permission_id"] == permission.id
    assert granted.conditions_met["time_window"] is True

    clock.now = SATURDAY_2PM
    denied = controller.check_access("viewer-user", FACILITY, "exportData")
    assert denied.granted is False
    assert denied.access_method == AccessMethod.denied
    assert denied.conditions_met["evaluated"][permission.id]["time_window"] is False


# -----------------------------------------------------
# Role capabilities
# -----------------------------------------------------
def test_override_grant_is_reported_as_facility_role(store, controller):
    store.add_override_row({"user_id": "viewer-user", "facility_id": FACILITY, "role": Role.facility_manager})

    decision = controller.check_access("viewer-user", FACILITY, "deleteProducts")

    assert decision.granted is True
    assert decision.access_method == AccessMethod.facility_role


def test_override_does_not_leak_to_other_facility(store, controller):
    store.add_override_row({"user_id": "viewer-user", "facility_id": FACILITY, "role": Role.facility_manager})

    decision = controller.check_access("viewer-user", OTHER_FACILITY, "deleteProducts")

    assert decision.granted is False


def test_unknown_permission_is_denied(controller):
    decision = controller.check_access("national-user", FACILITY, "launchRockets")
    assert decision.granted is False


# -----------------------------------------------------
# Conditional permissions
# -----------------------------------------------------
def test_expired_permission_never_satisfies(store, controller, clock):
    add_permission(store, conditions=None, expires_at=clock.now - timedelta(minutes=1), is_active=True)

    decision = controller.check_access("viewer-user", FACILITY, "exportData")

    assert decision.granted is False
    assert list(decision.conditions_met["evaluated"].values()) == [{"expired": True}]


def test_permission_expiring_now_is_expired(store, controller, clock):
    add_permission(store, expires_at=clock.now)
    assert controller.check_access("viewer-user", FACILITY, "exportData").granted is False


def test_future_expiry_still_applies(store, controller, clock):
    add_permission(store, expires_at=clock.now + timedelta(days=1))
    assert controller.check_access("viewer-user", FACILITY, "exportData").granted is True


def test_empty_conditions_always_satisfy(store, controller, clock):
    add_permission(store, conditions={})

    for moment in (TUESDAY_2PM, SATURDAY_2PM, SATURDAY_2PM.replace(hour=3)):
        clock.now = moment
        decision = controller.check_access("viewer-user", FACILITY, "exportData")
        assert decision.granted is True
        assert decision.access_method == AccessMethod.conditional


def test_inactive_permission_is_ignored(store, controller):
    add_permission(store, is_active=False)
    assert controller.check_access("viewer-user", FACILITY, "exportData").granted is False


def test_conditional_permission_is_scoped_to_facility(store, controller):
    add_permission(store)

    assert controller.check_access("viewer-user", OTHER_FACILITY, "exportData").granted is False
    assert controller.check_access("viewer-user", None, "exportData").granted is False


def test_location_constraint(store, controller):
    add_permission(store, conditions={"location_constraints": {"required_facility": FACILITY}})

    at_site = controller.check_access(
        "viewer-user", FACILITY, "exportData", RequestContext(facility_id=FACILITY)
    )
    remote = controller.check_access(
        "viewer-user", FACILITY, "exportData", RequestContext(facility_id=OTHER_FACILITY)
    )
    unknown = controller.check_access("viewer-user", FACILITY, "exportData")

    assert at_site.granted is True
    assert at_site.conditions_met["location"] is True
    assert remote.granted is False
    assert unknown.granted is False


def test_time_and_location_both_required(store, controller, clock):
    add_permission(store, conditions={
        **WEEKDAY_OFFICE_HOURS,
        "location_constraints": {"required_facility": FACILITY},
    })
    context = RequestContext(facility_id=FACILITY)

    assert controller.check_access("viewer-user", FACILITY, "exportData", context).granted is True

    clock.now = SATURDAY_2PM
    assert controller.check_access("viewer-user", FACILITY, "exportData", context).granted is False


def test_end_hour_is_exclusive(store, controller, clock):
    add_permission(store, conditions=WEEKDAY_OFFICE_HOURS)

    clock.now = TUESDAY_2PM.replace(hour=17)
    assert controller.check_access("viewer-user", FACILITY, "exportData").granted is False

    clock.now = TUESDAY_2PM.replace(hour=9)
    assert controller.check_access("viewer-user", FACILITY, "exportData").granted is True


def test_windows_use_configured_timezone(store, clock):
    add_permission(store, conditions=WEEKDAY_OFFICE_HOURS)
    controller = AccessController(store, clock=clock, tz="Africa/Lagos")  # UTC+1

    clock.now = TUESDAY_2PM.replace(hour=16, minute=30)  # 17:30 in Lagos
    assert controller.check_access("viewer-user", FACILITY, "exportData").granted is False

    clock.now = TUESDAY_2PM.replace(hour=8)  # 09:00 in Lagos
    assert controller.check_access("viewer-user", FACILITY, "exportData").granted is True


def test_invalid_stored_conditions_never_satisfy(store, controller):
    overnight = add_permission(store, conditions={"time_windows": [{"start_hour": 22, "end_hour": 6}]})
    unknown = add_permission(store, conditions={"weather": "sunny"})

    decision = controller.check_access("viewer-user", FACILITY, "exportData")

    assert decision.granted is False
    assert "invalid" in decision.conditions_met["evaluated"][overnight.id]
    assert "invalid" in decision.conditions_met["evaluated"][unknown.id]


def test_any_satisfied_permission_grants(store, controller, clock):
    add_permission(store, conditions=WEEKDAY_OFFICE_HOURS)
    add_permission(store, conditions={})

    clock.now = SATURDAY_2PM
    assert controller.check_access("viewer-user", FACILITY, "exportData").granted is True


# -----------------------------------------------------
# Fail closed
# -----------------------------------------------------
def test_inconsistent_overrides_deny_everything(store, controller):
    store.add_override_row({"user_id": "national-user", "facility_id": FACILITY, "role": Role.national})
    store.add_override_row({"user_id": "national-user", "facility_id": FACILITY, "role": Role.zonal})

    decision = controller.check_access("national-user", FACILITY, "viewProducts")

    assert decision.granted is False
    assert "InconsistentOverrideError" in decision.conditions_met["failure"]


def test_store_timeout_denies(store, controller):
    with patch.object(store, "fetch_global_role", side_effect=ExternalStoreError("timed out")):
        decision = controller.check_access("national-user", None, "viewProducts")

    assert decision.granted is False
    assert decision.effective_role == Role.viewer


def test_conditional_lookup_failure_denies(store, controller):
    with patch.object(
        store, "fetch_active_conditional_permissions", side_effect=ExternalStoreError("timed out")
    ):
        decision = controller.check_access("viewer-user", FACILITY, "exportData")

    assert decision.granted is False
    assert "timed out" in decision.conditions_met["failure"]


def test_unknown_user_is_denied(controller):
    assert controller.check_access("ghost", FACILITY, "viewProducts").granted is False


# -----------------------------------------------------
# Usage log
# -----------------------------------------------------
def test_every_check_logs_exactly_once(store, controller):
    add_permission(store, conditions=WEEKDAY_OFFICE_HOURS)
    calls = [
        ("officer-user", FACILITY, "createProducts"),
        ("viewer-user", FACILITY, "manageUsers"),
        ("viewer-user", FACILITY, "exportData"),
        ("ghost", None, "viewProducts"),
    ]

    decisions = [controller.check_access(*call) for call in calls]

    entries = list(reversed(store.list_usage_log()))
    assert len(entries) == len(calls)
    for decision, entry in zip(decisions, entries):
        assert entry.user_id == decision.user_id
        assert entry.permission_name == decision.permission_name
        assert entry.access_granted == decision.granted
        assert entry.access_method == decision.access_method


def test_usage_entry_carries_request_context(store, controller, clock):
    controller.check_access(
        "officer-user", FACILITY, "createProducts",
        RequestContext(facility_id=FACILITY, resource_type="product", resource_id="sku-9", session_id="s-1"),
    )

    entry = store.list_usage_log(user_id="officer-user")[0]
    assert entry.resource_type == "product"
    assert entry.resource_id == "sku-9"
    assert entry.session_id == "s-1"
    assert entry.facility_id == FACILITY
    assert entry.created_at == clock.now


def test_usage_log_failure_turns_grant_into_deny(store, controller):
    with patch.object(store, "append_usage_log_entry", side_effect=ExternalStoreError("down")):
        decision = controller.check_access("officer-user", FACILITY, "createProducts")

    assert decision.granted is False
    assert decision.access_method == AccessMethod.denied
    assert decision.conditions_met["failure"] == "usage_log_unavailable"


def test_override_for_user_without_profile_is_denied(store, controller):
    store.add_override_row({"user_id": "ghost", "facility_id": FACILITY, "role": Role.national})

    decision = controller.check_access("ghost", FACILITY, "manageUsers")

    assert decision.granted is False
    assert decision.conditions_met["failure"] == "user_not_found"
