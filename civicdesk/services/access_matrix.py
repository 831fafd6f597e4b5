"""Access matrix — default vs effective permissions per role, plus module reachability export."""

import csv
import io
from typing import Any, Dict, List

from civicdesk.core.labels import permission_label
from civicdesk.core.roles import role_label
from civicdesk.services.override_store import PermissionOverrideStore

# Sidebar modules and the permissions that open them (any one suffices).
MODULE_CHECKS = [
    ("Dashboard", ("dashboard.view",)),
    ("Resident Management", ("residents.view",)),
    ("Certificate Management", ("certificates.view",)),
    ("Blotter Records", ("blotter.view",)),
    ("Financial Management", ("financial_management.view",)),
    ("Payment Processing", ("payment_processing.view",)),
    ("Disbursement Requests", ("finance.disbursement.view",)),
    ("Official Receipts", ("official_receipts.view",)),
    ("Collection Reports", ("collection_reports.view",)),
    ("Transaction History", ("transaction_history.view",)),
    ("Financial Summary", ("financial_summary.view",)),
    ("Youth Management", ("youth_management.view",)),
    ("Youth Residents", ("youth_residents.view",)),
    ("Youth Programs", ("youth_programs.view",)),
    ("Youth Reports", ("youth_reports.view",)),
    ("Programs & Projects", ("programs.view",)),
    ("Committee Reports", ("committee_reports.view",)),
    ("Programs Monitoring", ("programs_monitoring.view",)),
    ("Analytics (Trends)", ("reports_analytics.view",)),
    ("Reports (Export)", ("reports.view",)),
    ("Document Archive", ("document_archive.view",)),
    ("Upload Documents", ("documents.upload",)),
    ("Data Quality", ("data.validate", "data.archive")),
    ("User Management", ("users.manage",)),
    ("Role Permissions", ("roles.manage",)),
    ("Audit Logs", ("audit.view",)),
    ("System Logs", ("system.logs.view",)),
    ("Backup & Restore", ("system.backup",)),
    ("System Settings", ("system.settings",)),
]

EXPORT_COLUMNS = [
    "Role",
    "Module",
    "Status",
    "Required Permissions (Readable)",
    "Required Permissions (Key)",
    "Effective Permission Count",
]


class AccessMatrixReporter:
    """Read-only reconciliation of catalog defaults against stored overrides.

    Recomputed on every call; nothing is cached.
    """

    def __init__(self, overrides: PermissionOverrideStore):
        self.overrides = overrides
        self.catalog = overrides.catalog

    def _effective(self) -> Dict[str, List[str]]:
        stored = self.overrides.list_overrides()
        return {
            role: stored.get(role, list(self.catalog.defaults_for(role)))
            for role in self.catalog.roles()
        }

    def build_matrix(self) -> List[Dict[str, Any]]:
        rows = []
        effective_by_role = self._effective()
        for role in self.catalog.roles():
            defaults = list(self.catalog.defaults_for(role))
            effective = effective_by_role[role]
            default_set, effective_set = set(defaults), set(effective)
            rows.append({
                "role": role,
                "role_label": role_label(role),
                "default_permissions": defaults,
                "effective_permissions": effective,
                "added_permissions": [p for p in effective if p not in default_set],
                "removed_permissions": [p for p in defaults if p not in effective_set],
            })
        return rows

    def export_rows(self) -> List[List[Any]]:
        """One row per (role, module check), header excluded."""
        rows = []
        for role, effective in self._effective().items():
            allowed = set(effective)
            for module, required in MODULE_CHECKS:
                rows.append([
                    role_label(role),
                    module,
                    "allowed" if any(p in allowed for p in required) else "blocked",
                    " or ".join(permission_label(p) for p in required),
                    " or ".join(required),
                    len(effective),
                ])
        return rows

    def export_csv(self) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(EXPORT_COLUMNS)
        writer.writerows(self.export_rows())
        return buffer.getvalue()
