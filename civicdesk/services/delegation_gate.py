"""Delegation gate — global switch granting staff approve/reject on certificates and blotters."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from civicdesk.db.session import atomic
from civicdesk.models.delegation_setting import DelegationSetting, SINGLETON_ID
from civicdesk.services.audit_service import AuditTrail, audit_trail

logger = logging.getLogger("civicdesk.rbac")

TARGET_TYPE = "delegation_setting"


class DelegationGate:
    """Reads and flips the singleton ``DelegationSetting`` row.

    Whether the caller may toggle is decided by the access decision engine
    before ``toggle`` is reached; the gate itself does not check.
    """

    def __init__(self, db: Session, audit: AuditTrail = audit_trail):
        self.db = db
        self.audit = audit

    def current(self) -> DelegationSetting:
        """Get-or-create the singleton row.

        The insert runs in a savepoint of the caller's transaction and is
        committed with it. The row has a fixed primary key, so if a concurrent
        request inserted it first only the savepoint is rolled back and the
        winner's row is read instead.
        """
        setting = self.db.get(DelegationSetting, SINGLETON_ID)
        if setting is not None:
            return setting

        try:
            with self.db.begin_nested():
                setting = DelegationSetting(id=SINGLETON_ID, staff_can_approve=False)
                self.db.add(setting)
        except IntegrityError:
            logger.debug("Delegation setting created concurrently, re-reading")
            return self.db.get(DelegationSetting, SINGLETON_ID)

        logger.info("Created delegation setting (staff_can_approve=False)")
        return setting

    def is_enabled(self) -> bool:
        return bool(self.current().staff_can_approve)

    def toggle(
        self,
        actor: Optional[Any],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        """Flip the flag, record who and when, and audit it. Returns the new state."""
        with atomic(self.db):
            setting = self.current()
            before = setting.snapshot()
            setting.staff_can_approve = not setting.staff_can_approve
            setting.enabled_by = getattr(actor, "id", None)
            setting.enabled_at = datetime.now(timezone.utc).replace(tzinfo=None)
            self.db.flush()
            self.audit.record(
                self.db, actor, "delegation.toggle", TARGET_TYPE, setting.id,
                before=before,
                after=setting.snapshot(),
                ip_address=ip_address, user_agent=user_agent,
            )
            enabled = bool(setting.staff_can_approve)

        logger.info(
            "Delegation %s by user %s",
            "enabled" if enabled else "disabled",
            getattr(actor, "id", None),
        )
        return enabled
