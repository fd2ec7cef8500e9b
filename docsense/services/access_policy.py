"""Access decisions for documents, download requests and user administration.

The predicates are pure: they look only at the document and the caller's id and
role. The ``ensure_*`` guards raise before any mutation takes place.
"""
from sqlalchemy.orm import Session

from docsense.core.errors import Forbidden, InvalidState
from docsense.core.roles import ADMIN_ROLE
from docsense.models import Document, User


def is_admin(caller_role: str | None) -> bool:
    return caller_role == ADMIN_ROLE


def _is_owner(doc: Document, caller_id: str | None) -> bool:
    return caller_id is not None and str(doc.uploaded_by) == str(caller_id)


def can_view(doc: Document, caller_id: str | None, caller_role: str | None) -> bool:
    return bool(doc.is_public) or is_admin(caller_role) or _is_owner(doc, caller_id)


def can_download_directly(doc: Document, caller_id: str | None, caller_role: str | None) -> bool:
    """Whether the document policy lets the caller skip the request workflow."""
    return bool(doc.allow_download) or is_admin(caller_role) or _is_owner(doc, caller_id)


def can_manage_requests(caller_role: str | None) -> bool:
    return is_admin(caller_role)


def can_delete_document(doc: Document, caller_id: str | None, caller_role: str | None) -> bool:
    # public documents are not deletable by everyone
    return is_admin(caller_role) or _is_owner(doc, caller_id)


def ensure_can_view(doc: Document, caller: User) -> None:
    if not can_view(doc, caller.id, caller.role):
        raise Forbidden()


def ensure_can_delete(doc: Document, caller: User) -> None:
    if not can_delete_document(doc, caller.id, caller.role):
        raise Forbidden()


def ensure_can_manage_requests(caller: User) -> None:
    if not can_manage_requests(caller.role):
        raise Forbidden("Insufficient permissions. Access denied.")


def ensure_not_self(actor_id: str, target_id: str, message: str) -> None:
    if str(actor_id) == str(target_id):
        raise InvalidState(message)


def ensure_not_last_admin(db: Session, target: User) -> None:
    if target.role != ADMIN_ROLE:
        return
    admins = db.query(User).filter(User.role == ADMIN_ROLE).count()
    if admins <= 1:
        raise InvalidState("Cannot delete the last superuser account")
