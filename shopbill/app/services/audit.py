from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from shopbill.app.models.audit import AuditLog


def log_action(
    db: Session,
    *,
    user_id: UUID | None,
    action: str,
    resource_type: str,
    resource_id: str,
    changes: dict[str, Any] | None = None,
    old_values: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> None:
    """Write a single row to the audit_logs table.

    Does NOT commit; the row joins the caller's transaction so it is kept or
    discarded together with the change it describes.
    ``old_values`` holds the record as it was before an update.
    """
    db.add(
        AuditLog(
            table_name=resource_type,
            record_id=resource_id,
            action=action,
            changed_by=user_id,
            old_values=old_values,
            new_values=changes,
            ip_address=ip_address,
        )
    )
