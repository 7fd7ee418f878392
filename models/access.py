# models/access.py

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator

from core.errors import InvalidConditionError
from models.enums import ConditionKind, Role


# ===============================================================
# FACILITY ROLE OVERRIDES
# ===============================================================

class FacilityRoleOverride(BaseModel):
    """
    Mirrors facility_specific_roles.
    At most one active row per (user_id, facility_id).
    """
    id: str
    user_id: str
    facility_id: str
    role: Role
    granted_by: Optional[str] = None
    granted_at: datetime
    is_active: bool = True


# ===============================================================
# CONDITIONS (tagged union)
# ===============================================================

class TimeWindow(BaseModel):
    """
    Half-open hour range [start_hour, end_hour) on the allowed days.
    Days follow 0=Sunday … 6=Saturday. Omitted allowed_days means every day,
    an empty list means no day.
    """
    model_config = ConfigDict(extra="forbid")

    start_hour: int = Field(ge=0, le=23)
    end_hour: int = Field(ge=1, le=24)
    allowed_days: Optional[List[Annotated[int, Field(ge=0, le=6)]]] = None

    @model_validator(mode="after")
    def check_order(self):
        # Overnight windows have no agreed meaning; refuse them.
        if self.start_hour >= self.end_hour:
            raise ValueError(
                f"start_hour ({self.start_hour}) must be before end_hour ({self.end_hour})"
            )
        return self


class NoConditions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["none"] = "none"


class TimeWindowConditions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["time_window"] = "time_window"
    time_windows: List[TimeWindow] = Field(min_length=1)


class LocationConditions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["location"] = "location"
    required_facility: str = Field(min_length=1)


class TimeAndLocationConditions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["time_and_location"] = "time_and_location"
    time_windows: List[TimeWindow] = Field(min_length=1)
    required_facility: str = Field(min_length=1)


PermissionConditions = Annotated[
    Union[NoConditions, TimeWindowConditions, LocationConditions, TimeAndLocationConditions],
    Field(discriminator="kind"),
]

_conditions_adapter = TypeAdapter(PermissionConditions)

CONDITION_KEYS = {"time_windows", "location_constraints"}
LOCATION_KEYS = {"required_facility"}


def parse_conditions(raw) -> PermissionConditions:
    """
    Turn the stored conditions JSON into one of the tagged variants.
    Raises InvalidConditionError for anything that does not fit exactly.
    """
    if isinstance(raw, (NoConditions, TimeWindowConditions, LocationConditions, TimeAndLocationConditions)):
        return raw
    if raw is None:
        return NoConditions()
    if not isinstance(raw, dict):
        raise InvalidConditionError(f"conditions must be an object, got {type(raw).__name__}")

    if "kind" in raw:
        return _validate_variant(raw)

    unknown = set(raw) - CONDITION_KEYS
    if unknown:
        raise InvalidConditionError(f"unsupported condition keys: {', '.join(sorted(unknown))}")

    windows = raw.get("time_windows") or None
    location = raw.get("location_constraints") or {}
    if not isinstance(location, dict):
        raise InvalidConditionError("location_constraints must be an object")
    unknown = set(location) - LOCATION_KEYS
    if unknown:
        raise InvalidConditionError(f"unsupported location constraints: {', '.join(sorted(unknown))}")
    facility = location.get("required_facility")

    if windows is not None and facility is not None:
        data = {"kind": ConditionKind.time_and_location.value, "time_windows": windows, "required_facility": facility}
    elif windows is not None:
        data = {"kind": ConditionKind.time_window.value, "time_windows": windows}
    elif facility is not None:
        data = {"kind": ConditionKind.location.value, "required_facility": facility}
    else:
        data = {"kind": ConditionKind.none.value}

    return _validate_variant(data)


def _validate_variant(data: dict) -> PermissionConditions:
    try:
        return _conditions_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidConditionError(f"invalid conditions: {e.errors(include_url=False)}") from e


def conditions_to_json(conditions: PermissionConditions) -> Dict[str, Any]:
    """Stored shape of a parsed conditions variant."""
    data: Dict[str, Any] = {}
    windows = getattr(conditions, "time_windows", None)
    if windows:
        data["time_windows"] = [w.model_dump(exclude_none=True) for w in windows]
    facility = getattr(conditions, "required_facility", None)
    if facility:
        data["location_constraints"] = {"required_facility": facility}
    return data


# ===============================================================
# CONDITIONAL PERMISSIONS
# ===============================================================

class ConditionalPermission(BaseModel):
    """
    Mirrors conditional_permissions.
    `conditions` keeps the stored JSON; parse it with parsed_conditions().
    """
    id: str
    user_id: str
    facility_id: str
    permission_name: str
    conditions: Any = Field(default_factory=dict)
    is_active: bool = True
    granted_by: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("conditions", mode="before")
    @classmethod
    def null_conditions(cls, value):
        return {} if value is None else value

    def parsed_conditions(self) -> PermissionConditions:
        return parse_conditions(self.conditions)

    def is_expired(self, now: datetime) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= as_utc(now)

    def is_in_effect(self, now: datetime) -> bool:
        """Active and not expired. Expiry is evaluated here, never swept."""
        return self.is_active and not self.is_expired(now)


def as_utc(moment: datetime) -> datetime:
    """Naive timestamps from the store are UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
