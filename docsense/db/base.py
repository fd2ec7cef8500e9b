from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import models so Alembic and create_all can discover metadata
from docsense.models import (  # noqa: E402,F401
    audit,
    document,
    download_request,
    role,
    user,
)
