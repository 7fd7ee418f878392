# core/conditions.py

from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from models.access import PermissionConditions, TimeWindow


def day_of_week(moment: datetime) -> int:
    """0=Sunday … 6=Saturday."""
    return (moment.weekday() + 1) % 7


def window_contains(window: TimeWindow, moment: datetime) -> bool:
    """[start_hour, end_hour) on an allowed day. `moment` is already in local time."""
    if window.allowed_days is not None and day_of_week(moment) not in window.allowed_days:
        return False
    return window.start_hour <= moment.hour < window.end_hour


def evaluate_conditions(
    conditions: PermissionConditions, moment: datetime, request_facility: Optional[str]
) -> Tuple[bool, Dict[str, Any]]:
    """
    Check a parsed conditions variant against the request.

    Returns (satisfied, conditions_met) where conditions_met records each
    evaluated constraint and its outcome.
    """
    met: Dict[str, Any] = {"kind": conditions.kind}
    satisfied = True

    windows = getattr(conditions, "time_windows", None)
    if windows:
        matched = next((i for i, w in enumerate(windows) if window_contains(w, moment)), None)
        met["time_window"] = matched is not None
        if matched is not None:
            met["matched_window"] = matched
        satisfied = satisfied and matched is not None

    required = getattr(conditions, "required_facility", None)
    if required:
        location_ok = request_facility == required
        met["location"] = location_ok
        satisfied = satisfied and location_ok

    return satisfied, met
