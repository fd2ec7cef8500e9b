import uuid

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from docsense.core import security
from docsense.core.config import get_settings
from docsense.core.roles import ADMIN_ROLE, DEFAULT_ROLE
from docsense.db.base import Base
from docsense.db.init_db import seed_roles
from docsense.models import Document, DocumentStatus, User


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    target = tmp_path / "uploads"
    target.mkdir()
    monkeypatch.setattr(get_settings(), "upload_dir", str(target))
    return target


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    seed_roles(session)
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def file_engine(tmp_path):
    """A file-backed database so each thread gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


def make_user(db, username: str, role: str = DEFAULT_ROLE, approved: bool = True) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=security.hash_password("Secret123!"),
        role=role,
        is_approved=approved,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_admin(db, username: str = "root") -> User:
    return make_user(db, username, role=ADMIN_ROLE)


def make_document(db, owner: User, directory, is_public: bool = False, content: bytes = b"quarterly audit") -> Document:
    path = directory / f"{uuid.uuid4().hex}.txt"
    path.write_bytes(content)
    document = Document(
        title="Quarterly report",
        original_name="report.txt",
        filename=path.name,
        file_path=str(path),
        file_type="txt",
        mime_type="text/plain",
        file_size=len(content),
        content=content.decode(),
        uploaded_by=owner.id,
        status=DocumentStatus.PROCESSED,
        is_public=is_public,
    )
    db.add(document)
    db.commit()
    db.refresh(document)
    return document


def auth_header(user: User) -> dict:
    return {"Authorization": f"Bearer {security.create_access_token(user.id, user.role)}"}
