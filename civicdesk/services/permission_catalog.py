"""Permission catalog — immutable default permission matrix keyed by role."""

import json
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from civicdesk.core.config import settings
from civicdesk.core.exceptions import CatalogError

logger = logging.getLogger("civicdesk.rbac")

DEFAULT_MATRIX_PATH = Path(__file__).resolve().parent.parent / "core" / "permission_matrix.json"


class PermissionCatalog:
    """Role -> default permissions, loaded once and never mutated.

    Changing the defaults requires a restart. Role order follows the
    configuration file; permissions keep their configured order with
    duplicates dropped.
    """

    def __init__(self, matrix: Mapping[str, Iterable[str]], version: str = "unversioned"):
        entries: Dict[str, Tuple[str, ...]] = {}
        for role, permissions in matrix.items():
            if not isinstance(permissions, (list, tuple, set, frozenset)):
                raise CatalogError(f"Permissions for role '{role}' must be a list")
            entries[str(role)] = tuple(dict.fromkeys(str(p) for p in permissions))
        self._entries = MappingProxyType(entries)
        self._all = tuple(sorted({p for perms in entries.values() for p in perms}))
        self.version = version

    @classmethod
    def from_file(cls, path) -> "PermissionCatalog":
        """Parse a versioned JSON matrix: ``{"version": ..., "roles": {role: [...]}}``."""
        path = Path(path)
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise CatalogError(f"Permission matrix not found: {path}")
        except json.JSONDecodeError as e:
            raise CatalogError(f"Permission matrix is not valid JSON ({path}): {e}")

        roles = document.get("roles") if isinstance(document, dict) else None
        if not isinstance(roles, dict):
            raise CatalogError(f"Permission matrix has no 'roles' mapping: {path}")

        catalog = cls(roles, version=str(document.get("version", "unversioned")))
        logger.info(
            "Loaded permission matrix v%s: %d roles, %d permissions",
            catalog.version, len(catalog.roles()), len(catalog.all_permissions()),
        )
        return catalog

    def roles(self) -> Tuple[str, ...]:
        return tuple(self._entries.keys())

    def has_role(self, role: str) -> bool:
        return role in self._entries

    def defaults_for(self, role: str) -> Tuple[str, ...]:
        """Default permissions for ``role``; empty for unknown roles."""
        return self._entries.get(role, ())

    def all_permissions(self) -> Tuple[str, ...]:
        """Union across all roles, deduplicated, sorted lexicographically."""
        return self._all

    def is_known_permission(self, permission: str) -> bool:
        return permission in self._all

    def as_dict(self) -> Dict[str, list]:
        return {role: list(perms) for role, perms in self._entries.items()}


@lru_cache(maxsize=None)
def load_catalog(path: Optional[str] = None) -> PermissionCatalog:
    return PermissionCatalog.from_file(path or DEFAULT_MATRIX_PATH)


def get_catalog() -> PermissionCatalog:
    """Process-wide catalog (FastAPI dependency)."""
    return load_catalog(settings.PERMISSION_MATRIX_PATH)
