from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from docsense.api.deps import get_current_user, get_db
from docsense.models import User
from docsense.schemas.auth import LoginRequest, LoginResponse, RefreshRequest, RegisterRequest, TokenPair, UserOut
from docsense.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    return auth_service.register_user(db, body)


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    return auth_service.login(db, body.email, body.password)


@router.post("/refresh", response_model=TokenPair)
def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    result = auth_service.refresh(db, body.refresh_token)
    return TokenPair(
        access_token=result["access_token"],
        refresh_token=result["refresh_token"],
        expires_at=result["expires_at"],
    )


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user
