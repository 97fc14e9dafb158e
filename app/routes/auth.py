from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.auth import require_user
from app.core.security import create_access_token
from app.database.db import get_db
from app.models.users import User
from app.schemas.users import LoginRequest, ProfileUpdate, TokenOut, UserCreate, UserOut
from app.services.errors import ServiceError, UnauthorizedError
from app.services.users import authenticate, create_user, update_profile

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    try:
        return create_user(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.post("/login", response_model=TokenOut)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return JWT."""
    user = authenticate(db, body.email, body.password)
    if not user:
        error = UnauthorizedError("Invalid email or password", reason="invalid_credentials")
        raise HTTPException(status_code=error.status_code, detail=error.to_detail())
    token = create_access_token(user.id, user.role)
    return TokenOut(access_token=token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(require_user)):
    return user


@router.patch("/me", response_model=UserOut)
def update_me(payload: ProfileUpdate, user: User = Depends(require_user), db: Session = Depends(get_db)):
    """Update name and skill level of the current user."""
    return update_profile(db, user, payload)
