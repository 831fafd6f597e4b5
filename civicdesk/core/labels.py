"""Human-readable labels for permission tokens, audit actions and modules.

Presentation helpers only. They are total: any input, including empty or
malformed tokens, yields non-empty text.
"""

import re

MODULE_WORDS = {
    "residents": "Residents",
    "certificates": "Certificates",
    "blotter": "Blotter",
    "dashboard": "Dashboard",
    "users": "Users",
    "roles": "Roles",
    "role": "Role",
    "permissions": "Permissions",
    "permission": "Permission",
    "audit": "Audit Logs",
    "system": "System",
    "logs": "Logs",
    "backup": "Backup",
    "reports": "Reports",
    "finance": "Finance",
    "financial": "Financial",
    "payment": "Payment",
    "payments": "Payments",
    "official": "Official",
    "receipts": "Receipts",
    "collection": "Collection",
    "transaction": "Transaction",
    "history": "History",
    "summary": "Summary",
    "document": "Document",
    "documents": "Documents",
    "archive": "Archive",
    "data": "Data",
    "youth": "Youth",
    "programs": "Programs",
    "committee": "Committee",
    "delegation": "Delegation",
    "matrix": "Access Matrix",
    "settings": "Settings",
    "funds": "Funds",
    "budget": "Budget",
    "disbursement": "Disbursement",
}

PERMISSION_ACTIONS = {
    "view": "View",
    "create": "Create",
    "update": "Update",
    "delete": "Delete",
    "approve": "Approve",
    "reject": "Reject",
    "submit": "Submit",
    "release_if_approved": "Release (If Approved)",
    "upload": "Upload",
    "download": "Download",
    "export": "Export",
    "archive": "Archive",
    "restore": "Restore",
    "reset": "Reset",
    "manage": "Manage",
    "record": "Record",
    "toggle": "Toggle",
}

AUDIT_VERBS = {
    "create": "Created",
    "update": "Updated",
    "delete": "Deleted",
    "destroy": "Deleted",
    "approve": "Approved",
    "reject": "Rejected",
    "submit": "Submitted",
    "release": "Released",
    "upload": "Uploaded",
    "download": "Downloaded",
    "export": "Exported",
    "archive": "Archived",
    "restore": "Restored",
    "reset": "Reset",
    "reset_all": "Reset All",
    "toggle": "Toggled",
    "login": "Logged In",
    "logout": "Logged Out",
    "record": "Recorded",
}

_SEPARATORS = re.compile(r"[_-]+")


def _words(value: str) -> str:
    chunks = [chunk for chunk in _SEPARATORS.split(str(value or "")) if chunk]
    return " ".join(MODULE_WORDS.get(chunk, chunk[:1].upper() + chunk[1:]) for chunk in chunks)


def _title(value: str) -> str:
    spaced = _SEPARATORS.sub(" ", str(value or ""))
    return re.sub(r"\b\w", lambda m: m.group().upper(), spaced).strip()


def permission_label(permission) -> str:
    """``finance.payment.view`` -> ``Finance Payment: View``."""
    raw = str(permission if permission is not None else "").strip()
    if not raw:
        return "-"

    parts = raw.split(".")
    if len(parts) == 1:
        return _words(parts[0]) or raw

    action = PERMISSION_ACTIONS.get(parts[-1]) or _words(parts[-1])
    resource = _words("_".join(parts[:-1]))
    label = f"{resource}: {action}".strip(": ")
    return label or raw


def action_label(action) -> str:
    """``role.permissions.update`` -> ``Updated Role Permissions``."""
    raw = str(action if action is not None else "").strip()
    if not raw:
        return "-"

    parts = [part for part in raw.split(".") if part]
    if not parts:
        return raw
    if len(parts) == 1:
        return AUDIT_VERBS.get(parts[0].lower()) or _title(parts[0]) or raw

    verb = AUDIT_VERBS.get(parts[-1].lower()) or _title(parts[-1])
    target = _title(" ".join(parts[:-1]))
    return f"{verb} {target}".strip() or raw


def module_label(target_type) -> str:
    """``role_permission`` -> ``Role Permission``; namespaced class paths keep the last segment."""
    raw = str(target_type or "").strip()
    if not raw:
        return "-"
    last = re.split(r"[\\./]", raw)[-1]
    return _title(last) or raw
