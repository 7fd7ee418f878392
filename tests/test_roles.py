# tests/test_roles.py

"""
Tests for the role hierarchy and backend role mapping.
"""

import itertools

import pytest

from core.errors import UnknownRoleError
from core.roles import (
    BACKEND_ROLE_NAMES,
    ROLE_HIERARCHY,
    assignable_roles,
    can_manage_roles,
    from_backend_role,
    has_seniority_at_least,
    is_valid_role,
    parse_role,
    rank_of,
    role_display_name,
    roles_by_seniority,
    to_backend_role,
    to_role,
)
from models.enums import InvalidRolePolicy, Role


def test_every_role_has_a_distinct_rank():
    assert set(ROLE_HIERARCHY) == set(Role)
    assert len(set(ROLE_HIERARCHY.values())) == len(Role)


def test_known_ranks():
    assert rank_of(Role.viewer) == 1
    assert rank_of(Role.facility_manager) == 8
    assert rank_of("national") == 11


@pytest.mark.parametrize("lower,higher", [
    (a, b) for a, b in itertools.permutations(Role, 2) if ROLE_HIERARCHY[a] < ROLE_HIERARCHY[b]
])
def test_seniority_is_ordered(lower, higher):
    assert has_seniority_at_least(higher, lower) is True
    assert has_seniority_at_least(lower, higher) is False


@pytest.mark.parametrize("role", list(Role))
def test_seniority_is_reflexive(role):
    assert has_seniority_at_least(role, role) is True


def test_is_valid_role():
    assert is_valid_role("zonal")
    assert is_valid_role(Role.qa)
    assert not is_valid_role("admin")
    assert not is_valid_role("")
    assert not is_valid_role(None)
    assert not is_valid_role(7)


def test_to_role_rejects_unknown():
    with pytest.raises(UnknownRoleError):
        to_role("superuser")


def test_hierarchy_lookups_reject_unknown_roles():
    with pytest.raises(UnknownRoleError):
        rank_of("superuser")
    with pytest.raises(UnknownRoleError):
        has_seniority_at_least("superuser", Role.viewer)


def test_parse_role_policies():
    assert parse_role("finance") == Role.finance

    with pytest.raises(UnknownRoleError):
        parse_role("superuser", InvalidRolePolicy.reject)

    assert parse_role("superuser", InvalidRolePolicy.viewer) == Role.viewer


def test_assignable_roles_are_strictly_lower():
    assert assignable_roles(Role.viewer) == []
    assert assignable_roles(Role.zonal) == roles_by_seniority()[:8]
    assert Role.zonal not in assignable_roles(Role.zonal)
    assert Role.regional in assignable_roles(Role.national)
    assert Role.national not in assignable_roles(Role.national)


def test_only_administrators_manage_roles():
    assert can_manage_roles(Role.zonal)
    assert can_manage_roles(Role.national)
    assert not can_manage_roles(Role.facility_manager)
    assert not can_manage_roles(Role.viewer)


# -----------------------------------------------------
# Backend mapping
# -----------------------------------------------------
@pytest.mark.parametrize("role", list(Role))
def test_backend_mapping_round_trips(role):
    assert from_backend_role(to_backend_role(role)) == role


def test_backend_mapping_is_injective():
    names = [to_backend_role(role) for role in Role]
    assert len(set(names)) == len(names)


def test_backend_short_names():
    assert to_backend_role(Role.facility_manager) == "manager"
    assert to_backend_role(Role.data_analyst) == "analyst"
    assert to_backend_role(Role.zonal) == "zonal"
    assert set(BACKEND_ROLE_NAMES) == {Role.facility_manager, Role.data_analyst}


def test_legacy_admin_reads_as_national():
    assert from_backend_role("admin") == Role.national


def test_unknown_backend_role():
    with pytest.raises(UnknownRoleError):
        from_backend_role("contractor")
    assert from_backend_role("contractor", InvalidRolePolicy.viewer) == Role.viewer


def test_display_names():
    assert role_display_name(Role.zonal) == "Zonal Administrator"
    assert role_display_name("qa") == "Quality Assurance"
