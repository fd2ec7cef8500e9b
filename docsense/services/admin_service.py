import logging

from sqlalchemy.orm import Session

from docsense.core.errors import InvalidState, NotFound, ValidationFailed
from docsense.core.roles import ADMIN_ROLE
from docsense.models import DownloadRequest, Role, User
from .access_policy import ensure_not_last_admin, ensure_not_self
from .audit_service import log_audit

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def list_pending_users(db: Session) -> list[User]:
    return (
        db.query(User)
        .filter(User.is_approved.is_(False), User.is_rejected.is_(False))
        .order_by(User.created_at_utc.desc())
        .all()
    )


def list_users(db: Session) -> dict:
    users = db.query(User).order_by(User.created_at_utc.desc()).all()
    stats = {
        "total": len(users),
        "approved": sum(1 for u in users if u.is_approved and not u.is_rejected),
        "pending": sum(1 for u in users if not u.is_approved and not u.is_rejected),
        "rejected": sum(1 for u in users if u.is_rejected),
        "superusers": sum(1 for u in users if u.role == ADMIN_ROLE),
    }
    return {"users": users, "stats": stats}


def approve_user(db: Session, user_id: str, actor: User) -> User:
    user = get_user(db, user_id)
    if user.is_approved:
        raise InvalidState("User is already approved")
    if user.is_rejected:
        raise InvalidState("Cannot approve a rejected user")
    user.is_approved = True
    db.add(user)
    db.commit()
    db.refresh(user)
    log_audit(db, action="USER_APPROVED", actor_user_id=actor.id, details={"userId": user.id, "email": user.email})
    return user


def reject_user(db: Session, user_id: str, actor: User) -> User:
    user = get_user(db, user_id)
    if user.is_approved:
        raise InvalidState("Cannot reject an already approved user")
    if user.is_rejected:
        raise InvalidState("User is already rejected")
    user.is_rejected = True
    db.add(user)
    db.commit()
    db.refresh(user)
    log_audit(db, action="USER_REJECTED", actor_user_id=actor.id, details={"userId": user.id, "email": user.email})
    return user


def toggle_approval(db: Session, user_id: str, actor: User) -> User:
    user = get_user(db, user_id)
    ensure_not_self(actor.id, user.id, "Cannot change your own approval")
    user.is_approved = not user.is_approved
    if user.is_approved:
        user.is_rejected = False
    db.add(user)
    db.commit()
    db.refresh(user)
    log_audit(
        db,
        action="USER_APPROVAL_TOGGLED",
        actor_user_id=actor.id,
        details={"userId": user.id, "isApproved": user.is_approved},
    )
    return user


def update_user_role(db: Session, user_id: str, role_name: str, actor: User) -> User:
    role_name = (role_name or "").strip().upper()
    role = db.query(Role).filter(Role.name == role_name, Role.is_active.is_(True)).first()
    if not role:
        raise ValidationFailed("Invalid role. Role must exist and be active.")

    user = get_user(db, user_id)
    ensure_not_self(actor.id, user.id, "Cannot change your own role")

    old_role = user.role
    user.role = role.name
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Admin {actor.id} changed role of user {user.id}: {old_role} -> {user.role}")
    log_audit(
        db,
        action="USER_ROLE_CHANGED",
        actor_user_id=actor.id,
        details={"userId": user.id, "from": old_role, "to": user.role},
    )
    return user


def delete_user(db: Session, user_id: str, actor: User) -> None:
    user = get_user(db, user_id)
    ensure_not_self(actor.id, user.id, "Cannot delete your own account")
    ensure_not_last_admin(db, user)

    db.query(DownloadRequest).filter(DownloadRequest.requester_id == user.id).delete(synchronize_session=False)
    db.delete(user)
    db.commit()
    logger.info(f"Admin {actor.id} deleted user {user_id}")
    log_audit(db, action="USER_DELETED", actor_user_id=actor.id, details={"userId": user_id, "email": user.email})
