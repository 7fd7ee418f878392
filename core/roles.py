# core/roles.py

from typing import Dict, List, Union

from core.errors import UnknownRoleError
from core.logging_config import logger
from models.enums import InvalidRolePolicy, Role


# ============================================
# ROLE HIERARCHY (single authoritative table)
# ============================================
ROLE_HIERARCHY: Dict[Role, int] = {
    Role.viewer: 1,
    Role.facility_officer: 2,
    Role.qa: 3,
    Role.procurement: 4,
    Role.finance: 5,
    Role.data_analyst: 6,
    Role.program_manager: 7,
    Role.facility_manager: 8,
    Role.zonal: 9,
    Role.regional: 10,
    Role.national: 11,
}

LOWEST_ROLE = Role.viewer

# Minimum seniority for any role or permission mutation
ROLE_ADMIN_MIN_ROLE = Role.zonal


# ============================================
# BACKEND ROLE NAMES
# ============================================
# The hosted backend's user_role enum uses a few shorter names.
# Roles not listed here are stored under their own name.
BACKEND_ROLE_NAMES: Dict[Role, str] = {
    Role.facility_manager: "manager",
    Role.data_analyst: "analyst",
}

# Legacy values still found in old profiles rows (read-only)
LEGACY_BACKEND_ROLES: Dict[str, Role] = {
    "admin": Role.national,
}

_ROLES_BY_BACKEND_NAME: Dict[str, Role] = {
    name: role for role, name in BACKEND_ROLE_NAMES.items()
}


# ============================================
# DISPLAY
# ============================================
ROLE_DISPLAY_NAMES: Dict[Role, str] = {
    Role.facility_officer: "Facility Officer",
    Role.facility_manager: "Facility Manager",
    Role.zonal: "Zonal Administrator",
    Role.regional: "Regional Administrator",
    Role.national: "National Administrator",
    Role.procurement: "Procurement Officer",
    Role.finance: "Finance Officer",
    Role.program_manager: "Program Manager",
    Role.qa: "Quality Assurance",
    Role.data_analyst: "Data Analyst",
    Role.viewer: "Viewer",
}

ROLE_DESCRIPTIONS: Dict[Role, str] = {
    Role.facility_officer: "Basic facility operations and data entry",
    Role.facility_manager: "Full facility management and oversight",
    Role.zonal: "Zone-level administration and coordination",
    Role.regional: "Regional oversight and management",
    Role.national: "National-level administration",
    Role.procurement: "Procurement and supply chain operations",
    Role.finance: "Financial oversight and budget management",
    Role.program_manager: "Program coordination and management",
    Role.qa: "Quality assurance and compliance",
    Role.data_analyst: "Data analysis and reporting",
    Role.viewer: "Read-only access to system data",
}


# -----------------------------------------------------
# Validation
# -----------------------------------------------------
def is_valid_role(candidate) -> bool:
    """Pure predicate used before trusting any role string from outside."""
    if isinstance(candidate, Role):
        return True
    return isinstance(candidate, str) and candidate in Role._value2member_map_


def to_role(candidate: Union[Role, str]) -> Role:
    """Strict conversion. Raises UnknownRoleError for anything outside the closed set."""
    if not is_valid_role(candidate):
        raise UnknownRoleError(candidate)
    return Role(candidate)


def parse_role(candidate, policy: InvalidRolePolicy = InvalidRolePolicy.reject) -> Role:
    """
    Convert an external role string under an explicit policy.

    reject  → UnknownRoleError
    viewer  → lowest-privilege role, logged
    """
    if is_valid_role(candidate):
        return Role(candidate)

    if InvalidRolePolicy(policy) == InvalidRolePolicy.viewer:
        logger.warning(f"Unknown role {candidate!r} coerced to {LOWEST_ROLE} (INVALID_ROLE_POLICY=viewer)")
        return LOWEST_ROLE

    raise UnknownRoleError(candidate)


# -----------------------------------------------------
# Hierarchy
# -----------------------------------------------------
def rank_of(role: Union[Role, str]) -> int:
    return ROLE_HIERARCHY[to_role(role)]


def has_seniority_at_least(role: Union[Role, str], min_role: Union[Role, str]) -> bool:
    return rank_of(role) >= rank_of(min_role)


def assignable_roles(role: Union[Role, str]) -> List[Role]:
    """Roles this role may hand out: strictly lower ranks only."""
    level = rank_of(role)
    return [r for r in sorted(ROLE_HIERARCHY, key=ROLE_HIERARCHY.get) if ROLE_HIERARCHY[r] < level]


def can_manage_roles(role: Union[Role, str]) -> bool:
    return has_seniority_at_least(role, ROLE_ADMIN_MIN_ROLE)


def roles_by_seniority() -> List[Role]:
    return sorted(ROLE_HIERARCHY, key=ROLE_HIERARCHY.get)


# -----------------------------------------------------
# Backend mapping
# -----------------------------------------------------
def to_backend_role(role: Union[Role, str]) -> str:
    role = to_role(role)
    return BACKEND_ROLE_NAMES.get(role, role.value)


def from_backend_role(value: str, policy: InvalidRolePolicy = InvalidRolePolicy.reject) -> Role:
    """Interpret a role string read from the backend."""
    if value in _ROLES_BY_BACKEND_NAME:
        return _ROLES_BY_BACKEND_NAME[value]
    if value in LEGACY_BACKEND_ROLES:
        return LEGACY_BACKEND_ROLES[value]
    return parse_role(value, policy)


# -----------------------------------------------------
# Display helpers
# -----------------------------------------------------
def role_display_name(role: Union[Role, str]) -> str:
    return ROLE_DISPLAY_NAMES[to_role(role)]


def role_description(role: Union[Role, str]) -> str:
    return ROLE_DESCRIPTIONS[to_role(role)]
