import logging
import uuid
from pathlib import Path
from typing import BinaryIO, Iterator

from sqlalchemy import String, cast, or_, update
from sqlalchemy.orm import Session

from docsense.core.config import get_settings
from docsense.core.errors import NotFound, ValidationFailed
from docsense.core.time import utcnow
from docsense.models import ALLOWED_FILE_TYPES, Document, DocumentStatus, DownloadRequest, User
from .access_policy import ensure_can_delete, ensure_can_view, is_admin
from .audit_service import log_audit

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


def get(db: Session, document_id: str) -> Document:
    document = db.query(Document).filter(Document.id == document_id).first()
    if not document:
        raise NotFound("Document not found")
    return document


def exists(db: Session, document_id: str) -> bool:
    return db.query(Document.id).filter(Document.id == document_id).first() is not None


def get_for_viewer(db: Session, document_id: str, caller: User) -> Document:
    document = get(db, document_id)
    ensure_can_view(document, caller)
    return document


def touch_last_accessed(db: Session, document: Document) -> None:
    document.last_accessed_utc = utcnow()
    db.add(document)
    db.commit()


def bump_download_count(db: Session, document_id: str) -> None:
    """Increment the aggregate counter. Joins the caller's transaction; does not commit."""
    db.execute(
        update(Document)
        .where(Document.id == document_id)
        .values(download_count=Document.download_count + 1)
    )


def _iter_file(path: Path, chunk_size: int) -> Iterator[bytes]:
    with path.open("rb") as fh:
        while True:
            chunk = fh.read(chunk_size)
            if not chunk:
                break
            yield chunk


def stored_path(document: Document) -> Path:
    path = Path(document.file_path)
    if not path.is_file():
        logger.error(f"Stored file missing for document {document.id}: {path}")
        raise NotFound("File not found on server")
    return path


def stream_bytes(document: Document, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    return _iter_file(stored_path(document), chunk_size)


def read_upload(stream: BinaryIO, max_bytes: int, chunk_size: int = CHUNK_SIZE) -> bytes:
    """Read an upload stream, refusing it as soon as it grows past ``max_bytes``."""
    chunks = []
    total = 0
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise ValidationFailed("File too large")
        chunks.append(chunk)
    return b"".join(chunks)


def _file_type(original_name: str) -> str:
    suffix = Path(original_name).suffix.lower().lstrip(".")
    if suffix not in ALLOWED_FILE_TYPES:
        raise ValidationFailed(f"Unsupported file type: {suffix or 'unknown'}")
    return suffix


def _extract_text(file_type: str, data: bytes) -> str:
    # only plain text is indexed; other formats are stored as-is
    if file_type == "txt":
        return data.decode("utf-8", errors="ignore")
    return ""


def create_document(
    db: Session,
    owner: User,
    original_name: str,
    data: bytes,
    title: str | None = None,
    is_public: bool = False,
    allow_download: bool = False,
    tags: list[str] | None = None,
) -> Document:
    settings = get_settings()
    if not original_name:
        raise ValidationFailed("No file uploaded")
    file_type = _file_type(original_name)
    if not data:
        raise ValidationFailed("Uploaded file is empty")
    if len(data) > settings.max_upload_bytes:
        raise ValidationFailed("File too large")

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid.uuid4().hex}.{file_type}"
    path = upload_dir / filename
    path.write_bytes(data)

    document = Document(
        title=(title or "").strip() or Path(original_name).stem,
        original_name=original_name,
        filename=filename,
        file_path=str(path),
        file_type=file_type,
        mime_type=ALLOWED_FILE_TYPES[file_type],
        file_size=len(data),
        content=_extract_text(file_type, data),
        uploaded_by=owner.id,
        status=DocumentStatus.PROCESSED,
        is_public=is_public,
        allow_download=allow_download,
        tags=[t.strip() for t in (tags or []) if t and t.strip()],
    )
    db.add(document)
    db.commit()
    db.refresh(document)
    logger.info(f"User {owner.email} uploaded document {document.id} ({document.file_size} bytes)")
    log_audit(db, action="DOCUMENT_UPLOADED", actor_user_id=owner.id, document_id=document.id,
              details={"title": document.title, "fileType": file_type})
    return document


def list_documents(
    db: Session,
    caller: User,
    q: str | None = None,
    file_type: str | None = None,
    page: int = 1,
    limit: int = 10,
):
    qs = db.query(Document)
    if not is_admin(caller.role):
        qs = qs.filter(or_(Document.is_public.is_(True), Document.uploaded_by == caller.id))
    if q:
        like = f"%{q}%"
        # tags are a JSON list; match against its text form
        qs = qs.filter(
            or_(
                Document.title.ilike(like),
                Document.content.ilike(like),
                cast(Document.tags, String).ilike(like),
            )
        )
    if file_type:
        qs = qs.filter(Document.file_type == file_type.lower())

    total = qs.count()
    page = max(1, page)
    limit = max(1, min(limit, 100))
    items = (
        qs.order_by(Document.created_at_utc.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total_pages = (total + limit - 1) // limit
    return {
        "items": items,
        "total": total,
        "page": page,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


def delete_document(db: Session, document_id: str, caller: User) -> None:
    document = get(db, document_id)
    ensure_can_delete(document, caller)

    path = Path(document.file_path)
    if path.is_file():
        path.unlink()

    db.query(DownloadRequest).filter(DownloadRequest.document_id == document.id).delete(synchronize_session=False)
    db.delete(document)
    db.commit()
    logger.info(f"User {caller.email} deleted document {document_id}")
    log_audit(db, action="DOCUMENT_DELETED", actor_user_id=caller.id, document_id=document_id)
