import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from docsense.core.errors import Conflict, InvalidState, NotFound
from docsense.models import Role, User
from docsense.schemas.role import RoleCreate, RoleUpdate
from .audit_service import log_audit

logger = logging.getLogger(__name__)


def user_count(db: Session, role_name: str) -> int:
    return db.query(User).filter(User.role == role_name).count()


def user_counts(db: Session) -> dict[str, int]:
    rows = db.query(User.role, func.count(User.id)).group_by(User.role).all()
    return {name: count for name, count in rows}


def with_count(role: Role, count: int) -> dict:
    return {
        "id": role.id,
        "name": role.name,
        "display_name": role.display_name,
        "description": role.description,
        "permissions": list(role.permissions or []),
        "is_active": role.is_active,
        "is_system": role.is_system,
        "user_count": count,
        "can_be_deleted": not role.is_system and count == 0,
        "created_at_utc": role.created_at_utc,
    }


def list_roles(db: Session, active_only: bool = False) -> list[dict]:
    qs = db.query(Role)
    if active_only:
        qs = qs.filter(Role.is_active.is_(True))
    counts = user_counts(db)
    return [with_count(role, counts.get(role.name, 0)) for role in qs.order_by(Role.display_name).all()]


def get_role(db: Session, role_id: str) -> Role:
    role = db.query(Role).filter(Role.id == role_id).first()
    if not role:
        raise NotFound("Role not found")
    return role


def create_role(db: Session, body: RoleCreate, actor_user_id: str | None = None) -> Role:
    name = body.name.strip().upper()
    if db.query(Role).filter(func.upper(Role.name) == name).first():
        raise Conflict("Role name already exists")
    role = Role(
        name=name,
        display_name=body.display_name.strip(),
        description=(body.description or "").strip() or None,
        permissions=list(dict.fromkeys(body.permissions or ["read"])),
        is_active=True,
        is_system=False,
    )
    db.add(role)
    db.commit()
    db.refresh(role)
    log_audit(db, action="ROLE_CREATED", actor_user_id=actor_user_id, details={"name": role.name})
    return role


def update_role(db: Session, role_id: str, body: RoleUpdate, actor_user_id: str | None = None) -> Role:
    role = get_role(db, role_id)
    if body.display_name is not None:
        role.display_name = body.display_name.strip()
    if body.description is not None:
        role.description = body.description.strip() or None
    if body.permissions is not None:
        role.permissions = list(dict.fromkeys(body.permissions))
    if body.is_active is not None:
        if role.is_system and not body.is_active:
            raise InvalidState("System roles cannot be deactivated")
        role.is_active = body.is_active
    db.add(role)
    db.commit()
    db.refresh(role)
    log_audit(db, action="ROLE_UPDATED", actor_user_id=actor_user_id, details={"name": role.name})
    return role


def delete_role(db: Session, role_id: str, actor_user_id: str | None = None) -> None:
    role = get_role(db, role_id)
    if role.is_system:
        raise InvalidState("System roles cannot be deleted")
    count = user_count(db, role.name)
    if count:
        raise InvalidState(f"Cannot delete role with {count} assigned user(s)")
    db.delete(role)
    db.commit()
    logger.info(f"Role {role.name} deleted")
    log_audit(db, action="ROLE_DELETED", actor_user_id=actor_user_id, details={"name": role.name})
