# tests/test_conditions.py

"""
Tests for parsing and evaluating conditional permission constraints.
"""

from datetime import datetime

import pytest

from core.conditions import day_of_week, evaluate_conditions, window_contains
from core.errors import InvalidConditionError
from models.access import (
    LocationConditions,
    NoConditions,
    TimeAndLocationConditions,
    TimeWindow,
    TimeWindowConditions,
    conditions_to_json,
    parse_conditions,
)


# -----------------------------------------------------
# Parsing
# -----------------------------------------------------
@pytest.mark.parametrize("raw", [None, {}, {"time_windows": []}, {"location_constraints": {}}])
def test_empty_conditions(raw):
    assert isinstance(parse_conditions(raw), NoConditions)


def test_time_window_variant():
    parsed = parse_conditions({"time_windows": [{"start_hour": 9, "end_hour": 17}]})

    assert isinstance(parsed, TimeWindowConditions)
    assert parsed.time_windows[0].allowed_days is None


def test_location_variant():
    parsed = parse_conditions({"location_constraints": {"required_facility": "facility-001"}})

    assert isinstance(parsed, LocationConditions)
    assert parsed.required_facility == "facility-001"


def test_time_and_location_variant():
    parsed = parse_conditions({
        "time_windows": [{"start_hour": 8, "end_hour": 12, "allowed_days": [1]}],
        "location_constraints": {"required_facility": "facility-001"},
    })
    assert isinstance(parsed, TimeAndLocationConditions)


def test_tagged_input_is_accepted():
    parsed = parse_conditions({"kind": "location", "required_facility": "facility-009"})
    assert isinstance(parsed, LocationConditions)


@pytest.mark.parametrize("raw", [
    {"time_windows": [{"start_hour": 22, "end_hour": 6}]},
    {"time_windows": [{"start_hour": 9, "end_hour": 9}]},
    {"time_windows": [{"start_hour": -1, "end_hour": 6}]},
    {"time_windows": [{"start_hour": 9, "end_hour": 25}]},
    {"time_windows": [{"start_hour": 9, "end_hour": 17, "allowed_days": [7]}]},
    {"time_windows": [{"start_hour": 9, "end_hour": 17, "timezone": "UTC"}]},
    {"time_windows": [{"start_hour": 9}]},
    {"time_windows": "9-17"},
    {"location_constraints": {"required_facility": ""}},
    {"location_constraints": {"radius_km": 5}},
    {"location_constraints": "facility-001"},
    {"ip_range": "10.0.0.0/8"},
    {"kind": "weather"},
    ["time_windows"],
    "anytime",
])
def test_malformed_conditions_are_rejected(raw):
    with pytest.raises(InvalidConditionError):
        parse_conditions(raw)


def test_conditions_to_json_normalizes():
    parsed = parse_conditions({
        "time_windows": [{"start_hour": 9, "end_hour": 17}],
        "location_constraints": {"required_facility": "facility-001"},
    })

    assert conditions_to_json(parsed) == {
        "time_windows": [{"start_hour": 9, "end_hour": 17}],
        "location_constraints": {"required_facility": "facility-001"},
    }
    assert conditions_to_json(NoConditions()) == {}


# -----------------------------------------------------
# Evaluation
# -----------------------------------------------------
def test_day_of_week_starts_on_sunday():
    assert day_of_week(datetime(2026, 10, 18)) == 0  # Sunday
    assert day_of_week(datetime(2026, 10, 20)) == 2  # Tuesday
    assert day_of_week(datetime(2026, 10, 24)) == 6  # Saturday


def test_omitted_days_means_every_day():
    window = TimeWindow(start_hour=0, end_hour=24)
    assert window_contains(window, datetime(2026, 10, 18, 23, 59))
    assert window_contains(window, datetime(2026, 10, 24, 0, 0))


def test_empty_days_means_no_day():
    window = TimeWindow(start_hour=0, end_hour=24, allowed_days=[])
    assert not window_contains(window, datetime(2026, 10, 20, 12))


def test_evaluate_reports_matched_window():
    conditions = parse_conditions({"time_windows": [
        {"start_hour": 6, "end_hour": 8},
        {"start_hour": 13, "end_hour": 15},
    ]})

    satisfied, met = evaluate_conditions(conditions, datetime(2026, 10, 20, 14), None)

    assert satisfied is True
    assert met == {"kind": "time_window", "time_window": True, "matched_window": 1}


def test_evaluate_location_without_request_facility():
    conditions = parse_conditions({"location_constraints": {"required_facility": "facility-001"}})

    satisfied, met = evaluate_conditions(conditions, datetime(2026, 10, 20, 14), None)

    assert satisfied is False
    assert met["location"] is False
