import logging

from sqlalchemy.orm import Session

from docsense.core import security
from docsense.core.config import get_settings
from docsense.core.roles import ADMIN_ROLE, DEFAULT_ROLE
from docsense.models import Role, User

logger = logging.getLogger(__name__)

SYSTEM_ROLES = [
    {
        "name": ADMIN_ROLE,
        "display_name": "Super User",
        "description": "Full administrative access",
        "permissions": ["read", "write", "delete", "admin", "moderate"],
    },
    {
        "name": DEFAULT_ROLE,
        "display_name": "User",
        "description": "Standard document access",
        "permissions": ["read", "write"],
    },
]


def seed_roles(db: Session) -> None:
    for spec in SYSTEM_ROLES:
        if db.query(Role).filter(Role.name == spec["name"]).first():
            continue
        db.add(Role(is_active=True, is_system=True, **spec))
        logger.info(f"Seeded system role {spec['name']}")
    db.commit()


def ensure_superuser_exists(db: Session) -> User:
    """Create the initial approved superuser if no superuser exists yet."""
    existing = db.query(User).filter(User.role == ADMIN_ROLE).first()
    if existing:
        return existing

    settings = get_settings()
    user = User(
        username=settings.superuser_username,
        email=settings.superuser_email.lower(),
        password_hash=security.hash_password(settings.superuser_password),
        role=ADMIN_ROLE,
        is_approved=True,
        is_rejected=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Seeded superuser {user.email}")
    return user


def seed_data(db: Session) -> None:
    seed_roles(db)
    ensure_superuser_exists(db)
