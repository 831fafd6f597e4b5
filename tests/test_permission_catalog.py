"""Tests for the default permission matrix and role aliasing."""
import json

import pytest

from civicdesk.core.exceptions import CatalogError
from civicdesk.core.roles import (
    ADMIN_PANEL_ROLES, ROLE_ALIASES, STAFF_PANEL_ROLES,
    canonical_role, is_admin_panel_role, is_staff_panel_role, role_label,
)
from civicdesk.services.permission_catalog import PermissionCatalog


def test_bundled_matrix_covers_every_routed_role(catalog):
    routed = set(ROLE_ALIASES.values()) | ADMIN_PANEL_ROLES | STAFF_PANEL_ROLES
    missing = [role for role in routed if not catalog.has_role(role)]
    assert missing == []
    assert catalog.version != "unversioned"


def test_all_permissions_is_sorted_union_without_duplicates(catalog):
    union = {p for role in catalog.roles() for p in catalog.defaults_for(role)}
    assert list(catalog.all_permissions()) == sorted(union)
    assert len(set(catalog.all_permissions())) == len(catalog.all_permissions())


def test_unknown_role_has_no_defaults(catalog):
    assert catalog.defaults_for("janitor") == ()
    assert not catalog.has_role("janitor")


def test_defaults_keep_order_and_drop_duplicates():
    catalog = PermissionCatalog({"encoder": ["residents.view", "residents.create", "residents.view"]})
    assert catalog.defaults_for("encoder") == ("residents.view", "residents.create")
    assert catalog.all_permissions() == ("residents.create", "residents.view")


def test_technical_administrator_defaults_include_system_settings(catalog):
    assert "system.settings" in catalog.defaults_for("technical_administrator")


def test_from_file_reads_version_and_roles(tmp_path):
    path = tmp_path / "matrix.json"
    path.write_text(json.dumps({"version": "7", "roles": {"encoder": ["residents.view"], "empty_role": []}}))

    catalog = PermissionCatalog.from_file(path)

    assert catalog.version == "7"
    assert catalog.roles() == ("encoder", "empty_role")
    assert catalog.defaults_for("empty_role") == ()


@pytest.mark.parametrize("content", [
    "not json",
    json.dumps({"version": "1"}),
    json.dumps({"roles": {"encoder": "residents.view"}}),
])
def test_from_file_rejects_malformed_matrix(tmp_path, content):
    path = tmp_path / "matrix.json"
    path.write_text(content)
    with pytest.raises(CatalogError):
        PermissionCatalog.from_file(path)


def test_from_file_missing(tmp_path):
    with pytest.raises(CatalogError):
        PermissionCatalog.from_file(tmp_path / "nope.json")


@pytest.mark.parametrize("raw,expected", [
    ("admin", "super_admin"),
    ("captain", "barangay_chairperson"),
    ("Chairman", "barangay_chairperson"),
    ("secretary", "records_administrator"),
    ("records_manager", "records_administrator"),
    ("staff", "staff_user"),
    ("frontline_user", "staff_user"),
    ("committee_access", "committee_access_user"),
    ("youth_admin", "youth_administrator"),
    ("system_admin", "technical_administrator"),
    ("auditor", "external_auditor"),
    ("finance_officer", "finance_officer"),
    (" staff_user ", "staff_user"),
    (None, ""),
])
def test_canonical_role(raw, expected):
    assert canonical_role(raw) == expected


def test_panel_groups_resolve_aliases():
    assert is_admin_panel_role("captain")
    assert is_staff_panel_role("frontline_user")
    assert not is_admin_panel_role("encoder")
    assert not is_staff_panel_role("janitor")


def test_role_label():
    assert role_label("records_administrator") == "Records Administrator"
    assert role_label("super_admin") == "Super Admin"
