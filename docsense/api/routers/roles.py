from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from docsense.api.deps import get_current_user, get_db, require_admin
from docsense.models import User
from docsense.schemas.role import RoleCreate, RoleOut, RoleUpdate
from docsense.services import role_service

router = APIRouter(prefix="/api/roles", tags=["roles"])


@router.get("", response_model=List[RoleOut])
def list_roles(active_only: bool = False, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    return role_service.list_roles(db, active_only=active_only)


@router.get("/{role_id}", response_model=RoleOut)
def get_role(role_id: str, db: Session = Depends(get_db), _: User = Depends(get_current_user)):
    role = role_service.get_role(db, role_id)
    return role_service.with_count(role, role_service.user_count(db, role.name))


@router.post("", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def create_role(body: RoleCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    role = role_service.create_role(db, body, actor_user_id=admin.id)
    return role_service.with_count(role, 0)


@router.put("/{role_id}", response_model=RoleOut)
def update_role(
    role_id: str,
    body: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    role = role_service.update_role(db, role_id, body, actor_user_id=admin.id)
    return role_service.with_count(role, role_service.user_count(db, role.name))


@router.delete("/{role_id}")
def delete_role(role_id: str, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    role_service.delete_role(db, role_id, actor_user_id=admin.id)
    return {"message": "Role deleted successfully"}
