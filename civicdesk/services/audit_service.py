"""Audit service — append-only audit trail for privileged mutations."""

import csv
import io
import json
import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Any, Dict, List

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from civicdesk.core.exceptions import AuditWriteFailure, ValidationError
from civicdesk.core.labels import action_label, module_label, permission_label
from civicdesk.models.audit_log import AuditLog

logger = logging.getLogger("civicdesk.audit")

MASK = "[MASKED]"
SENSITIVE_KEY_FRAGMENTS = ("password", "token", "secret", "remember", "otp", "pin")

# Actions whose last segment is one of these may carry no snapshot at all.
READ_ONLY_VERBS = frozenset({"view", "download", "export", "login", "logout"})

# ?module= filter values -> stored target types
MODULE_FILTERS = {
    "certificate": "certificate",
    "blotter": "blotter",
    "user": "user",
    "role": "role_permission",
    "delegation": "delegation_setting",
}

EXPORT_COLUMNS = [
    "Date",
    "Actor Name",
    "Actor Email",
    "Action",
    "Target Module",
    "Target Id",
    "Before",
    "After",
    "Source IP",
]


def client_info(request: Optional[Request]) -> Dict[str, Optional[str]]:
    """Source IP and user agent of a request, as keyword arguments for ``record``."""
    if request is None:
        return {"ip_address": None, "user_agent": None}
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent", "")[:500] or None,
    }


def _is_sensitive(key: Any) -> bool:
    normalized = str(key).lower()
    return any(fragment in normalized for fragment in SENSITIVE_KEY_FRAGMENTS)


def mask_sensitive(data: Any) -> Any:
    """Replace values of sensitive keys with ``[MASKED]``, recursing into nested maps and lists."""
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if _is_sensitive(key):
                masked[key] = MASK
            else:
                masked[key] = mask_sensitive(value)
        return masked
    if isinstance(data, list):
        return [mask_sensitive(item) for item in data]
    return data


def _label_permissions(data: Any) -> Any:
    if isinstance(data, dict):
        labelled = {}
        for key, value in data.items():
            is_permission_field = key == "permissions" or str(key).endswith("_permissions")
            if is_permission_field and isinstance(value, list):
                labelled[key] = [permission_label(p) for p in value]
            else:
                labelled[key] = _label_permissions(value)
        return labelled
    if isinstance(data, list):
        return [_label_permissions(item) for item in data]
    return data


def format_payload(data: Any) -> Any:
    """Display form of a before/after snapshot: masked, permission tokens labelled."""
    if data is None:
        return None
    return _label_permissions(mask_sensitive(data))


def _load(raw: Optional[str]) -> Any:
    return json.loads(raw) if raw else None


class AuditTrail:
    """Records immutable audit log entries and serves read/export views over them."""

    @staticmethod
    def record(
        db: Session,
        actor: Optional[Any],
        action: str,
        target_type: str,
        target_id: Optional[Any] = None,
        before: Optional[Any] = None,
        after: Optional[Any] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Write a single audit log record inside the caller's transaction.

        Args:
            actor: the acting ``User``, or None for system actions.
            action: e.g. "role.permissions.update", "delegation.toggle"
            target_type: role_permission, delegation_setting, user, ...

        The row is flushed, not committed: the caller's ``atomic`` block
        commits it together with the mutation it documents.

        Raises:
            ValidationError: if an update-style action carries no snapshot.
            AuditWriteFailure: if the row could not be written.
        """
        verb = action.rsplit(".", 1)[-1]
        if before is None and after is None and verb not in READ_ONLY_VERBS:
            raise ValidationError(f"Audit entry for '{action}' needs a before or after snapshot")

        entry = AuditLog(
            actor_id=getattr(actor, "id", None),
            actor_name=getattr(actor, "full_name", None),
            actor_email=getattr(actor, "email", None),
            action=action,
            target_type=target_type,
            target_id=str(target_id) if target_id is not None else None,
            before_json=json.dumps(before, default=str) if before is not None else None,
            after_json=json.dumps(after, default=str) if after is not None else None,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        try:
            db.add(entry)
            db.flush()
        except SQLAlchemyError as e:
            logger.error("Audit write failed for %s on %s:%s: %s", action, target_type, target_id, e)
            raise AuditWriteFailure("Audit record could not be written") from e
        return entry

    @staticmethod
    def record_from_request(
        db: Session,
        request: Request,
        actor: Optional[Any],
        action: str,
        target_type: str,
        target_id: Optional[Any] = None,
        before: Optional[Any] = None,
        after: Optional[Any] = None,
    ) -> AuditLog:
        """Write an audit record extracting IP and user-agent from the request."""
        return AuditTrail.record(
            db, actor, action, target_type, target_id,
            before=before, after=after, **client_info(request),
        )

    @staticmethod
    def _filtered_query(
        db: Session,
        user: Optional[str] = None,
        action: Optional[str] = None,
        module: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ):
        query = db.query(AuditLog)

        if user:
            pattern = f"%{user}%"
            query = query.filter(AuditLog.actor_name.ilike(pattern) | AuditLog.actor_email.ilike(pattern))
        if action:
            query = query.filter(AuditLog.action.ilike(f"%{action}%"))
        if module and module in MODULE_FILTERS:
            query = query.filter(AuditLog.target_type == MODULE_FILTERS[module])
        if date_from:
            query = query.filter(AuditLog.created_at >= datetime.combine(date_from, time.min))
        if date_to:
            query = query.filter(AuditLog.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

        return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())

    @staticmethod
    def query_logs(
        db: Session,
        user: Optional[str] = None,
        action: Optional[str] = None,
        module: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        page: int = 1,
        page_size: int = 15,
    ) -> Dict[str, Any]:
        """Query audit logs with filters and pagination, newest first."""
        query = AuditTrail._filtered_query(db, user, action, module, date_from, date_to)

        total = query.count()
        logs = query.offset((page - 1) * page_size).limit(page_size).all()

        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
        }

    @staticmethod
    def available_actions(db: Session) -> List[str]:
        rows = db.query(AuditLog.action).distinct().order_by(AuditLog.action).all()
        return [row[0] for row in rows]

    @staticmethod
    def present(log: AuditLog) -> Dict[str, Any]:
        """Display dict for one entry; snapshots are masked and labelled."""
        return {
            "id": log.id,
            "created_at": log.created_at,
            "actor_id": log.actor_id,
            "actor_name": log.actor_name or "System",
            "actor_email": log.actor_email,
            "action": log.action,
            "action_label": action_label(log.action),
            "target_type": log.target_type,
            "module": module_label(log.target_type),
            "target_id": log.target_id,
            "before": format_payload(_load(log.before_json)),
            "after": format_payload(_load(log.after_json)),
            "ip_address": log.ip_address,
        }

    @staticmethod
    def export_rows(db: Session, limit: Optional[int] = None, **filters) -> List[List[str]]:
        """One CSV row per entry (header excluded), newest first."""
        query = AuditTrail._filtered_query(db, **filters)
        if limit:
            query = query.limit(limit)

        rows = []
        for log in query.all():
            before = format_payload(_load(log.before_json))
            after = format_payload(_load(log.after_json))
            rows.append([
                str(log.created_at or ""),
                log.actor_name or "System",
                log.actor_email or "",
                action_label(log.action),
                module_label(log.target_type),
                log.target_id or "",
                json.dumps(before if before is not None else {}, ensure_ascii=False),
                json.dumps(after if after is not None else {}, ensure_ascii=False),
                log.ip_address or "",
            ])
        return rows

    @staticmethod
    def export_csv(db: Session, limit: Optional[int] = None, **filters) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(EXPORT_COLUMNS)
        writer.writerows(AuditTrail.export_rows(db, limit=limit, **filters))
        return buffer.getvalue()


audit_trail = AuditTrail()
