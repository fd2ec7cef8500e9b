import json
from typing import Any

from sqlalchemy.orm import Session

from docsense.core.time import utcnow
from docsense.models import AuditLog


def _normalize_details(details: Any) -> str | None:
    if details is None:
        return None
    if isinstance(details, str):
        return json.dumps({"message": details})
    try:
        return json.dumps(details, default=str)
    except TypeError:
        return json.dumps({"repr": repr(details)})


def log_audit(
    db: Session,
    action: str,
    actor_user_id: str | None = None,
    document_id: str | None = None,
    request_id: str | None = None,
    details: Any = None,
):
    entry = AuditLog(
        at_utc=utcnow(),
        action=action,
        actor_user_id=actor_user_id,
        document_id=document_id,
        request_id=request_id,
        details=_normalize_details(details),
    )
    db.add(entry)
    db.commit()


def list_audit(db: Session, page: int = 1, page_size: int = 20, q: str | None = None):
    qs = db.query(AuditLog)
    if q:
        like = f"%{q}%"
        qs = qs.filter(
            (AuditLog.action.like(like))
            | (AuditLog.actor_user_id.like(like))
            | (AuditLog.document_id.like(like))
            | (AuditLog.details.like(like))
        )
    total = qs.count()
    page = max(1, page)
    page_size = max(1, min(page_size, 100))
    items = (
        qs.order_by(AuditLog.at_utc.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {"items": items, "total": total, "page": page, "pageSize": page_size}
