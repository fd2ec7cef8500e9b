import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from docsense.core.errors import Forbidden, Unauthenticated
from docsense.core.roles import ADMIN_ROLE
from docsense.core.security import decode_token
from docsense.db.session import SessionLocal
from docsense.models import User
from docsense.services.auth_service import ensure_account_usable

bearer_scheme = HTTPBearer(auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme), db: Session = Depends(get_db)
) -> User:
    if credentials is None:
        raise Unauthenticated("Access token required")
    try:
        payload = decode_token(credentials.credentials)
    except jwt.InvalidTokenError:
        raise Unauthenticated("Invalid access token")

    user_id = payload.get("sub")
    if not user_id:
        raise Unauthenticated("Invalid token payload")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise Unauthenticated("User not found")
    ensure_account_usable(user)
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != ADMIN_ROLE:
        raise Forbidden("Insufficient permissions. Access denied.")
    return user


def client_info(request) -> tuple[str | None, str | None]:
    ip_address = request.client.host if request.client else None
    return ip_address, request.headers.get("user-agent")
