"""Download tokens: generation, validity and metered consumption.

A token is bound to exactly one approved ``DownloadRequest``. Consumption goes
through a conditional UPDATE so concurrent downloads against the same token can
never push ``download_count`` past ``max_downloads``.
"""
import logging
import secrets
from datetime import datetime

from sqlalchemy import or_, update
from sqlalchemy.orm import Session

from docsense.core.errors import LimitExceeded, NotFound, TokenExpired, ValidationFailed
from docsense.core.time import ensure_aware, utcnow
from docsense.models import Document, DownloadRequest, DownloadStatus
from . import document_service
from .audit_service import log_audit

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
MAX_TOKEN_ATTEMPTS = 5

EXPIRED = "expired"
LIMIT = "limit"
FILE_MISSING = "file_missing"


def new_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def generate_token(db: Session) -> str:
    """Draw a token not already held by any request."""
    for _ in range(MAX_TOKEN_ATTEMPTS):
        token = new_token()
        taken = db.query(DownloadRequest.id).filter(DownloadRequest.download_token == token).first()
        if not taken:
            return token
    raise RuntimeError("Could not generate a unique download token")


def invalid_reason(request: DownloadRequest, now: datetime | None = None) -> str | None:
    """Why a request cannot be consumed right now, or None when it can."""
    now = now or utcnow()
    if request.status == DownloadStatus.EXPIRED or request.download_count >= request.max_downloads:
        return LIMIT
    if request.status != DownloadStatus.APPROVED:
        return EXPIRED
    expires_at = ensure_aware(request.token_expires_at_utc)
    if expires_at is not None and now > expires_at:
        return EXPIRED
    return None


def is_valid(request: DownloadRequest, now: datetime | None = None) -> bool:
    return invalid_reason(request, now) is None


def find_by_token(db: Session, token: str) -> DownloadRequest:
    request = db.query(DownloadRequest).filter(DownloadRequest.download_token == token).populate_existing().first()
    if not request:
        raise NotFound("Invalid download token")
    return request


def _raise_for(reason: str) -> None:
    if reason == LIMIT:
        raise LimitExceeded("Download token has exceeded its download limit")
    raise TokenExpired("Download token has expired")


def _refuse(db: Session, request: DownloadRequest, reason: str, ip_address: str | None, user_agent: str | None):
    logger.warning(f"Download refused for request {request.id}: {reason}")
    log_audit(
        db,
        action="DOWNLOAD_REFUSED",
        actor_user_id=request.requester_id,
        document_id=request.document_id,
        request_id=request.id,
        details={"reason": reason, "ip": ip_address, "userAgent": user_agent},
    )


def validate_and_consume(
    db: Session,
    token: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> tuple[DownloadRequest, Document]:
    if not token or not token.strip():
        raise ValidationFailed("Download token required")
    token = token.strip()

    request = find_by_token(db, token)
    now = utcnow()
    reason = invalid_reason(request, now)
    if reason:
        _refuse(db, request, reason, ip_address, user_agent)
        _raise_for(reason)

    # Nothing is consumed unless the stored file can actually be served.
    document = document_service.get(db, request.document_id)
    try:
        document_service.stored_path(document)
    except NotFound:
        _refuse(db, request, FILE_MISSING, ip_address, user_agent)
        raise

    # Single conditional increment; a zero row count means another download won
    # the last unit or the token is no longer valid.
    result = db.execute(
        update(DownloadRequest)
        .where(
            DownloadRequest.download_token == token,
            DownloadRequest.status == DownloadStatus.APPROVED,
            DownloadRequest.download_count < DownloadRequest.max_downloads,
            or_(DownloadRequest.token_expires_at_utc.is_(None), DownloadRequest.token_expires_at_utc >= now),
        )
        .values(download_count=DownloadRequest.download_count + 1, downloaded_at_utc=now, updated_at_utc=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        db.refresh(request)
        reason = invalid_reason(request, now) or EXPIRED
        _refuse(db, request, reason, ip_address, user_agent)
        _raise_for(reason)

    db.execute(
        update(DownloadRequest)
        .where(
            DownloadRequest.id == request.id,
            DownloadRequest.status == DownloadStatus.APPROVED,
            DownloadRequest.download_count >= DownloadRequest.max_downloads,
        )
        .values(status=DownloadStatus.EXPIRED, active_key=None)
        .execution_options(synchronize_session=False)
    )
    document_service.bump_download_count(db, request.document_id)
    db.commit()

    db.refresh(request)
    db.refresh(document)
    logger.info(
        f"Token for request {request.id} consumed ({request.download_count}/{request.max_downloads}), "
        f"status {request.status.value}"
    )
    log_audit(
        db,
        action="DOWNLOAD_CONSUMED",
        actor_user_id=request.requester_id,
        document_id=request.document_id,
        request_id=request.id,
        details={
            "downloadCount": request.download_count,
            "maxDownloads": request.max_downloads,
            "ip": ip_address,
            "userAgent": user_agent,
        },
    )
    return request, document
