from docsense.core.roles import ADMIN_ROLE, DEFAULT_ROLE, PERMISSIONS

from .role import Role
from .user import User
from .document import ALLOWED_FILE_TYPES, Document, DocumentStatus
from .download_request import ACTIVE_STATUSES, DownloadRequest, DownloadStatus, active_key_for
from .audit import AuditLog

__all__ = [
    "ADMIN_ROLE",
    "DEFAULT_ROLE",
    "PERMISSIONS",
    "Role",
    "User",
    "ALLOWED_FILE_TYPES",
    "Document",
    "DocumentStatus",
    "ACTIVE_STATUSES",
    "DownloadRequest",
    "DownloadStatus",
    "active_key_for",
    "AuditLog",
]
