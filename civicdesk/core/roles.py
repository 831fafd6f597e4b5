"""Canonical role names, historical aliases and routing groups.

Role values accreted over several renames. Stored user rows may still carry an
old value, so every lookup goes through ``canonical_role`` first. The alias
table is data only; the decision engine never special-cases old names.
"""

SUPER_ADMIN = "super_admin"
STAFF_USER = "staff_user"

ROLE_ALIASES = {
    "admin": "super_admin",
    "captain": "barangay_chairperson",
    "chairman": "barangay_chairperson",
    "chairperson": "barangay_chairperson",
    "secretary": "records_administrator",
    "records_manager": "records_administrator",
    "staff": "staff_user",
    "frontline_user": "staff_user",
    "committee_access": "committee_access_user",
    "youth_admin": "youth_administrator",
    "system_admin": "technical_administrator",
    "auditor": "external_auditor",
}

# Routing groups only; permission resolution never consults them.
ADMIN_PANEL_ROLES = frozenset({
    "super_admin",
    "barangay_chairperson",
    "records_administrator",
    "finance_officer",
    "technical_administrator",
    "committee_access_user",
    "youth_administrator",
    "external_auditor",
})

STAFF_PANEL_ROLES = frozenset({
    "staff_user",
    "encoder",
    "data_manager",
})


def canonical_role(raw_role) -> str:
    """Resolve a stored role value (possibly a historical alias) to its current name."""
    role = str(raw_role or "").strip().lower()
    return ROLE_ALIASES.get(role, role)


def is_admin_panel_role(raw_role) -> bool:
    return canonical_role(raw_role) in ADMIN_PANEL_ROLES


def is_staff_panel_role(raw_role) -> bool:
    return canonical_role(raw_role) in STAFF_PANEL_ROLES


def role_label(role: str) -> str:
    """``records_administrator`` -> ``Records Administrator``."""
    return " ".join(chunk.capitalize() for chunk in str(role or "").split("_") if chunk)
