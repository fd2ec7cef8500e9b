"""Download request ledger.

Requests move ``pending -> approved | rejected`` exactly once, by an admin, and
``approved -> expired`` when the download allowance is used up. The one active
request per (document, requester) rule is enforced by the unique ``active_key``
column; transitions are conditional UPDATEs so racing callers get exactly one
winner.
"""
import logging
from datetime import timedelta
from enum import Enum

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from docsense.core.config import get_settings
from docsense.core.errors import Conflict, InvalidState, NotFound, ValidationFailed
from docsense.core.time import utcnow
from docsense.models import ACTIVE_STATUSES, DownloadRequest, DownloadStatus, User, active_key_for
from . import document_service
from .access_policy import ensure_can_manage_requests
from .audit_service import log_audit
from .download_token_service import MAX_TOKEN_ATTEMPTS, generate_token

logger = logging.getLogger(__name__)

NO_REQUEST = "none"
DEFAULT_REJECTION_REASON = "No reason provided"


class DecisionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


def get_request(db: Session, request_id: str) -> DownloadRequest:
    request = db.query(DownloadRequest).filter(DownloadRequest.id == request_id).populate_existing().first()
    if not request:
        raise NotFound("Download request not found")
    return request


def find_active(db: Session, document_id: str, requester_id: str) -> DownloadRequest | None:
    return (
        db.query(DownloadRequest)
        .filter(
            DownloadRequest.document_id == document_id,
            DownloadRequest.requester_id == requester_id,
            DownloadRequest.status.in_(ACTIVE_STATUSES),
        )
        .first()
    )


def create_request(
    db: Session,
    document_id: str,
    requester_id: str,
    reason: str | None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> DownloadRequest:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailed("Download reason is required")
    if not document_service.exists(db, document_id):
        raise NotFound("Document not found")

    if find_active(db, document_id, requester_id):
        raise Conflict("You already have a pending or approved download request for this document")

    settings = get_settings()
    now = utcnow()
    request = DownloadRequest(
        document_id=document_id,
        requester_id=requester_id,
        status=DownloadStatus.PENDING,
        request_reason=reason,
        active_key=active_key_for(document_id, requester_id),
        request_expires_at_utc=now + timedelta(days=settings.pending_request_ttl_days),
        ip_address=ip_address or "",
        user_agent=user_agent or "Unknown",
        created_at_utc=now,
    )
    db.add(request)
    try:
        db.commit()
    except IntegrityError:
        # lost a race against a concurrent request for the same pair
        db.rollback()
        raise Conflict("You already have a pending or approved download request for this document")
    db.refresh(request)

    logger.info(f"Download request {request.id} created for document {document_id} by user {requester_id}")
    log_audit(
        db,
        action="DOWNLOAD_REQUESTED",
        actor_user_id=requester_id,
        document_id=document_id,
        request_id=request.id,
        details={"reason": reason, "ip": request.ip_address},
    )
    return request


def get_status(db: Session, document_id: str, requester_id: str) -> dict:
    request = (
        db.query(DownloadRequest)
        .filter(DownloadRequest.document_id == document_id, DownloadRequest.requester_id == requester_id)
        .order_by(DownloadRequest.created_at_utc.desc())
        .populate_existing()
        .first()
    )
    if not request:
        return {"status": NO_REQUEST, "downloadToken": None}
    return {
        "status": request.status.value,
        "downloadToken": request.download_token,
        "downloadCount": request.download_count,
        "maxDownloads": request.max_downloads,
        "rejectionReason": request.rejection_reason,
    }


def _transition(db: Session, request_id: str, values: dict) -> int:
    result = db.execute(
        update(DownloadRequest)
        .where(DownloadRequest.id == request_id, DownloadRequest.status == DownloadStatus.PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _approve(db: Session, request_id: str, admin_id: str, max_downloads: int | None) -> int:
    settings = get_settings()
    for _ in range(MAX_TOKEN_ATTEMPTS):
        now = utcnow()
        values = {
            "status": DownloadStatus.APPROVED,
            "approver_id": admin_id,
            "approved_at_utc": now,
            "max_downloads": max(1, max_downloads or 1),
            "download_token": generate_token(db),
            "token_expires_at_utc": now + timedelta(hours=settings.download_token_ttl_hours),
            "updated_at_utc": now,
        }
        try:
            rowcount = _transition(db, request_id, values)
            db.commit()
            return rowcount
        except IntegrityError:
            # token collided with a concurrent approval; draw again
            db.rollback()
    raise RuntimeError("Could not issue a unique download token")


def _reject(db: Session, request_id: str, reason: str | None) -> int:
    now = utcnow()
    values = {
        "status": DownloadStatus.REJECTED,
        "rejected_at_utc": now,
        "rejection_reason": (reason or "").strip() or DEFAULT_REJECTION_REASON,
        "active_key": None,
        "updated_at_utc": now,
    }
    rowcount = _transition(db, request_id, values)
    db.commit()
    return rowcount


def decide(
    db: Session,
    request_id: str,
    admin: User,
    action: DecisionAction | str,
    max_downloads: int | None = None,
    rejection_reason: str | None = None,
) -> DownloadRequest:
    ensure_can_manage_requests(admin)
    try:
        action = DecisionAction(action)
    except ValueError:
        raise ValidationFailed("Action must be 'approve' or 'reject'")

    request = get_request(db, request_id)
    if request.status != DownloadStatus.PENDING:
        raise InvalidState("Request has already been processed")

    if action == DecisionAction.APPROVE:
        rowcount = _approve(db, request_id, admin.id, max_downloads)
    else:
        rowcount = _reject(db, request_id, rejection_reason)

    db.refresh(request)
    if rowcount != 1:
        logger.warning(f"Admin {admin.id} lost the race to decide request {request_id}")
        raise InvalidState("Request has already been processed")

    logger.info(f"Download request {request_id} {request.status.value} by admin {admin.id}")
    log_audit(
        db,
        action=f"DOWNLOAD_{request.status.value.upper()}",
        actor_user_id=admin.id,
        document_id=request.document_id,
        request_id=request.id,
        details={"maxDownloads": request.max_downloads, "rejectionReason": request.rejection_reason or None},
    )
    return request


def list_requests(db: Session, status: str | None = None, page: int = 1, limit: int = 10) -> dict:
    qs = db.query(DownloadRequest)
    if status and status != "all":
        try:
            qs = qs.filter(DownloadRequest.status == DownloadStatus(status))
        except ValueError:
            raise ValidationFailed(f"Unknown status filter: {status}")

    total = qs.count()
    page = max(1, page)
    limit = max(1, min(limit, 100))
    items = (
        qs.options(
            joinedload(DownloadRequest.document),
            joinedload(DownloadRequest.requester),
            joinedload(DownloadRequest.approver),
        )
        .order_by(DownloadRequest.created_at_utc.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "items": items,
        "currentPage": page,
        "totalPages": (total + limit - 1) // limit,
        "totalRequests": total,
    }
