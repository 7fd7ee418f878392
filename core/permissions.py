from types import MappingProxyType
from typing import Dict, Mapping, Union

from core.roles import has_seniority_at_least, to_role
from models.enums import Capability, Role


# ============================================
# CENTRALIZED ROLE → CAPABILITY GRANTS
# ============================================
# Anything not listed for a role is False.
ROLE_CAPABILITY_GRANTS = {

    # =====================================================
    # VIEWER: read-only fallback
    # =====================================================
    Role.viewer: [
        Capability.viewProducts,
        Capability.viewReports,
    ],

    # =====================================================
    # FACILITY OFFICER: day-to-day data entry
    # =====================================================
    Role.facility_officer: [
        Capability.viewProducts, Capability.createProducts, Capability.editProducts,
        Capability.importData, Capability.exportData,
        Capability.viewReports,
    ],

    # =====================================================
    # QUALITY ASSURANCE
    # =====================================================
    Role.qa: [
        Capability.viewProducts,
        Capability.viewReports,
        Capability.viewAnalytics,
        Capability.auditTrail,
    ],

    # =====================================================
    # PROCUREMENT
    # =====================================================
    Role.procurement: [
        Capability.viewProducts, Capability.createProducts, Capability.editProducts,
        Capability.importData, Capability.exportData,
        Capability.viewReports,
    ],

    # =====================================================
    # FINANCE
    # =====================================================
    Role.finance: [
        Capability.viewProducts,
        Capability.exportData,
        Capability.viewReports, Capability.advancedReports,
        Capability.viewAnalytics,
    ],

    # =====================================================
    # DATA ANALYST
    # =====================================================
    Role.data_analyst: [
        Capability.viewProducts,
        Capability.exportData,
        Capability.viewReports, Capability.advancedReports,
        Capability.viewAnalytics, Capability.dataAnalysis,
        Capability.scenarioPlanning,
    ],

    # =====================================================
    # PROGRAM MANAGER
    # =====================================================
    Role.program_manager: [
        Capability.viewProducts,
        Capability.importData, Capability.exportData,
        Capability.viewReports, Capability.advancedReports,
        Capability.viewAnalytics, Capability.dataAnalysis,
        Capability.scenarioPlanning,
        Capability.auditTrail,
    ],

    # =====================================================
    # FACILITY MANAGER: owns one facility
    # =====================================================
    Role.facility_manager: [
        Capability.viewProducts, Capability.createProducts,
        Capability.editProducts, Capability.deleteProducts,
        Capability.importData, Capability.exportData,
        Capability.viewReports,
        Capability.viewAnalytics,
        Capability.auditTrail,
        Capability.approveAssociations,
    ],

    # =====================================================
    # ZONAL: first administrative tier
    # =====================================================
    Role.zonal: [
        Capability.viewProducts, Capability.createProducts,
        Capability.editProducts, Capability.deleteProducts,
        Capability.importData, Capability.exportData,
        Capability.viewReports, Capability.advancedReports,
        Capability.viewAnalytics, Capability.dataAnalysis,
        Capability.scenarioPlanning,
        Capability.auditTrail,
        Capability.approveAssociations,
        Capability.manageUsers, Capability.manageFacilities, Capability.manageRoles,
    ],

    # =====================================================
    # REGIONAL: adds system configuration
    # =====================================================
    Role.regional: [
        Capability.viewProducts, Capability.createProducts,
        Capability.editProducts, Capability.deleteProducts,
        Capability.importData, Capability.exportData,
        Capability.viewReports, Capability.advancedReports,
        Capability.viewAnalytics, Capability.dataAnalysis,
        Capability.scenarioPlanning,
        Capability.auditTrail,
        Capability.approveAssociations,
        Capability.manageUsers, Capability.manageFacilities, Capability.manageRoles,
        Capability.manageSystem, Capability.systemIntegration,
    ],

    # =====================================================
    # NATIONAL: everything
    # =====================================================
    Role.national: list(Capability),
}


def _build_capability_table() -> Mapping[Role, Mapping[str, bool]]:
    table = {}
    for role in Role:
        granted = set(ROLE_CAPABILITY_GRANTS[role])
        table[role] = MappingProxyType(
            {capability.value: capability in granted for capability in Capability}
        )
    return MappingProxyType(table)


# Complete, read-only CapabilitySet per role
ROLE_CAPABILITIES: Mapping[Role, Mapping[str, bool]] = _build_capability_table()


# -----------------------------------------------------
# Lookups
# -----------------------------------------------------
def capabilities_for(role: Union[Role, str]) -> Mapping[str, bool]:
    """Full CapabilitySet for a role. Raises UnknownRoleError for invalid roles."""
    return ROLE_CAPABILITIES[to_role(role)]


def role_grants(role: Union[Role, str], capability: str) -> bool:
    """False for capability names outside the static table."""
    return capabilities_for(role).get(str(capability), False)


def derived_access(role: Union[Role, str]) -> Dict[str, bool]:
    """Coarse access levels computed from seniority, used by dashboards."""
    role = to_role(role)
    administrator = role in (Role.zonal, Role.regional, Role.national)
    return {
        "hasAdminAccess": has_seniority_at_least(role, Role.zonal),
        "hasManagerAccess": has_seniority_at_least(role, Role.facility_manager),
        "hasAnalystAccess": has_seniority_at_least(role, Role.data_analyst),
        "canCreateFacilities": administrator,
        "canManageGlobalRoles": administrator,
        "canViewAuditLogs": has_seniority_at_least(role, Role.qa),
        "canExportSensitiveData": has_seniority_at_least(role, Role.finance),
    }
