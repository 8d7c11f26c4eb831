# Overview: Append-only audit trail for business changes.

from __future__ import annotations

import json

from ..extensions import db
from ..models import AuditLog
from ..time_utils import utcnow


def _dump(value) -> str | None:
    if value is None:
        return None
    return json.dumps(value, default=str, sort_keys=True)


def record(
    *,
    shop_id: int | None,
    user_id: int | None,
    action: str,
    module: str,
    entity_type: str,
    entity_id: int | None = None,
    before: dict | None = None,
    after: dict | None = None,
    note: str | None = None,
) -> AuditLog:
    """
    Add an audit row to the current session.

    Does not commit: the row is written in the same transaction as the
    change it describes.
    """
    entry = AuditLog(
        shop_id=shop_id,
        user_id=user_id,
        action=action,
        module=module,
        entity_type=entity_type,
        entity_id=entity_id,
        before_json=_dump(before),
        after_json=_dump(after),
        note=note[:255] if note else None,
        occurred_at=utcnow(),
    )
    db.session.add(entry)
    return entry


def list_entries(shop_id: int, *, module: str | None = None, entity_type: str | None = None,
                 entity_id: int | None = None):
    """Newest-first query of a shop's audit rows, for pagination by the caller."""
    query = db.session.query(AuditLog).filter(AuditLog.shop_id == shop_id)
    if module:
        query = query.filter(AuditLog.module == module)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == entity_id)
    return query.order_by(AuditLog.occurred_at.desc(), AuditLog.id.desc())
