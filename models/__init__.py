# -------------------------
# Enums
# -------------------------
from .enums import (
    AccessMethod,
    Capability,
    ConditionKind,
    InvalidRolePolicy,
    Role,
    RoleAction,
    RoleType,
)

# -------------------------
# Overrides & Conditional Permissions
# -------------------------
from .access import (
    ConditionalPermission,
    FacilityRoleOverride,
    LocationConditions,
    NoConditions,
    PermissionConditions,
    TimeAndLocationConditions,
    TimeWindow,
    TimeWindowConditions,
    conditions_to_json,
    parse_conditions,
)

# -------------------------
# Audit & Usage Logs
# -------------------------
from .audit import PermissionUsageLogEntry, RoleAuditLogEntry

# -------------------------
# Decisions
# -------------------------
from .decision import (
    AccessDecision,
    BulkRoleAssignmentResult,
    RequestContext,
    RoleResolution,
)
