import logging
from datetime import timedelta

import jwt
from sqlalchemy import func
from sqlalchemy.orm import Session

from docsense.core import security
from docsense.core.config import get_settings
from docsense.core.errors import Conflict, Forbidden, Unauthenticated, ValidationFailed
from docsense.core.time import utcnow
from docsense.models import Role, User
from docsense.schemas.auth import RegisterRequest
from .audit_service import log_audit

logger = logging.getLogger(__name__)


def register_user(db: Session, body: RegisterRequest) -> User:
    email = body.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise Conflict("Email already registered")
    if db.query(User).filter(func.lower(User.username) == body.username.lower()).first():
        raise Conflict("Username already taken")

    role_name = body.role.upper()
    role = db.query(Role).filter(Role.name == role_name, Role.is_active.is_(True)).first()
    if not role:
        raise ValidationFailed("Invalid role. Role must exist and be active.")

    user = User(
        username=body.username,
        email=email,
        phone=body.phone,
        role=role.name,
        password_hash=security.hash_password(body.password),
        is_approved=False,
        is_rejected=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.email}, awaiting approval")
    log_audit(db, action="USER_REGISTERED", actor_user_id=user.id, details={"email": user.email, "role": user.role})
    return user


def ensure_account_usable(user: User) -> None:
    if user.is_rejected:
        raise Forbidden("Your account request has been rejected")
    if not user.is_approved:
        raise Forbidden("Your account is pending approval")


def _issue_tokens(user: User) -> dict:
    settings = get_settings()
    return {
        "access_token": security.create_access_token(user.id, user.role),
        "refresh_token": security.create_refresh_token(user.id, user.role),
        "expires_at": utcnow() + timedelta(minutes=settings.access_token_exp_minutes),
        "user": user,
    }


def login(db: Session, email: str, password: str) -> dict:
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user or not security.verify_password(password, user.password_hash):
        raise Unauthenticated("Invalid credentials")
    ensure_account_usable(user)
    logger.info(f"User {user.email} logged in")
    return _issue_tokens(user)


def refresh(db: Session, refresh_token: str) -> dict:
    try:
        payload = security.decode_token(refresh_token, kind=security.REFRESH)
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid refresh token")

    user = db.query(User).filter(User.id == payload.get("sub")).first()
    if not user:
        raise Unauthenticated("User not found")
    ensure_account_usable(user)
    return _issue_tokens(user)
