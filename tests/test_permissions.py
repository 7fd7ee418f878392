# tests/test_permissions.py

"""
Tests for role capability sets.
"""

import pytest

from core.errors import UnknownRoleError
from core.permissions import ROLE_CAPABILITIES, capabilities_for, derived_access, role_grants
from models.enums import Capability, Role


@pytest.mark.parametrize("role", list(Role))
def test_capability_set_has_every_key(role):
    capabilities = capabilities_for(role)
    assert set(capabilities) == set(Capability.list())
    assert all(isinstance(value, bool) for value in capabilities.values())


def test_capability_sets_are_read_only():
    with pytest.raises(TypeError):
        ROLE_CAPABILITIES[Role.viewer]["manageUsers"] = True
    with pytest.raises(TypeError):
        ROLE_CAPABILITIES[Role.viewer] = {}


def test_facility_officer_creates_products():
    assert role_grants(Role.facility_officer, Capability.createProducts)
    assert not role_grants(Role.facility_officer, Capability.manageUsers)


def test_viewer_is_read_only():
    granted = {name for name, value in capabilities_for(Role.viewer).items() if value}
    assert granted == {"viewProducts", "viewReports"}


def test_national_has_everything():
    assert all(capabilities_for(Role.national).values())


def test_system_capabilities_start_at_regional():
    assert not role_grants(Role.zonal, Capability.manageSystem)
    assert role_grants(Role.regional, Capability.manageSystem)
    assert role_grants(Role.zonal, Capability.manageRoles)


def test_unknown_capability_is_not_granted():
    assert role_grants(Role.national, "launchRockets") is False


def test_unknown_role_is_rejected():
    with pytest.raises(UnknownRoleError):
        capabilities_for("superuser")


def test_derived_access():
    assert derived_access(Role.zonal)["hasAdminAccess"] is True
    assert derived_access(Role.facility_manager)["hasAdminAccess"] is False
    assert derived_access(Role.facility_manager)["hasManagerAccess"] is True
    assert derived_access(Role.viewer) == {key: False for key in derived_access(Role.viewer)}
