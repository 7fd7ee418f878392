from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# ROLE
# -----------------------------------------------------
class Role(BaseStrEnum):
    """Closed set of platform roles. Seniority lives in core.roles."""

    viewer = "viewer"
    facility_officer = "facility_officer"
    qa = "qa"
    procurement = "procurement"
    finance = "finance"
    data_analyst = "data_analyst"
    program_manager = "program_manager"
    facility_manager = "facility_manager"
    zonal = "zonal"
    regional = "regional"
    national = "national"


# -----------------------------------------------------
# CAPABILITY
# -----------------------------------------------------
class Capability(BaseStrEnum):
    """Named permission bits bundled per role into a CapabilitySet."""

    createProducts = "createProducts"
    editProducts = "editProducts"
    deleteProducts = "deleteProducts"
    viewProducts = "viewProducts"
    importData = "importData"
    exportData = "exportData"
    viewAnalytics = "viewAnalytics"
    dataAnalysis = "dataAnalysis"
    systemIntegration = "systemIntegration"
    auditTrail = "auditTrail"
    scenarioPlanning = "scenarioPlanning"
    manageUsers = "manageUsers"
    viewReports = "viewReports"
    manageSystem = "manageSystem"
    advancedReports = "advancedReports"
    manageFacilities = "manageFacilities"
    approveAssociations = "approveAssociations"
    manageRoles = "manageRoles"


# -----------------------------------------------------
# ACCESS METHOD
# -----------------------------------------------------
class AccessMethod(BaseStrEnum):
    """How a decision was reached. Written to the usage log."""

    global_role = "global_role"
    facility_role = "facility_role"
    conditional = "conditional"
    denied = "denied"


# -----------------------------------------------------
# ROLE AUDIT
# -----------------------------------------------------
class RoleAction(BaseStrEnum):
    assign = "assign"
    revoke = "revoke"
    bulk_assign = "bulk_assign"
    global_role_change = "global_role_change"
    grant_permission = "grant_permission"
    revoke_permission = "revoke_permission"


class RoleType(BaseStrEnum):
    global_ = "global"
    facility_specific = "facility_specific"


# -----------------------------------------------------
# CONDITIONS
# -----------------------------------------------------
class ConditionKind(BaseStrEnum):
    """Tag for the shape of a conditional permission's constraints."""

    none = "none"
    time_window = "time_window"
    location = "location"
    time_and_location = "time_and_location"


# -----------------------------------------------------
# INVALID ROLE POLICY
# -----------------------------------------------------
class InvalidRolePolicy(BaseStrEnum):
    """What to do with a role string that is not in the closed set."""

    reject = "reject"
    viewer = "viewer"
