from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from docsense.api.deps import get_db, require_admin
from docsense.models import User
from docsense.schemas.admin import PendingUsersOut, UserListOut, UserRoleUpdate
from docsense.schemas.audit import AuditPage
from docsense.schemas.auth import UserOut
from docsense.services import admin_service
from docsense.services.audit_service import list_audit

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/requests", response_model=PendingUsersOut)
def pending_requests(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    users = admin_service.list_pending_users(db)
    return {"users": users, "count": len(users)}


@router.get("/users", response_model=UserListOut)
def list_users(db: Session = Depends(get_db), _: User = Depends(require_admin)):
    return admin_service.list_users(db)


@router.post("/requests/{user_id}/approve", response_model=UserOut)
def approve_user(user_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return admin_service.approve_user(db, user_id, admin)


@router.post("/requests/{user_id}/reject", response_model=UserOut)
def reject_user(user_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return admin_service.reject_user(db, user_id, admin)


@router.put("/users/{user_id}/role", response_model=UserOut)
def update_user_role(
    user_id: str,
    body: UserRoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return admin_service.update_user_role(db, user_id, body.role, admin)


@router.put("/users/{user_id}/toggle-approval", response_model=UserOut)
def toggle_user_approval(user_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return admin_service.toggle_approval(db, user_id, admin)


@router.delete("/users/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    admin_service.delete_user(db, user_id, admin)
    return {"message": "User deleted successfully"}


@router.get("/audit", response_model=AuditPage)
def audit(
    page: int = 1,
    page_size: int = 20,
    q: str | None = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
):
    return list_audit(db, page=page, page_size=page_size, q=q)
