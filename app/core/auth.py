"""FastAPI dependencies resolving the calling user from a bearer token."""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.security import decode_token
from app.database.db import get_db
from app.models.users import User, UserRole
from app.services.errors import ForbiddenError, UnauthorizedError

http_bearer = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Return current user from JWT, or None if not authenticated."""
    if not credentials or not credentials.credentials:
        return None
    payload = decode_token(credentials.credentials)
    if not payload:
        return None
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    return db.get(User, user_id)
def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    """Require authenticated user. Raises 401 if not logged in."""
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UnauthorizedError("Unauthorized").to_detail(),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_manager(user: User = Depends(require_user)) -> User:
    """Require admin or court manager role. Raises 403 otherwise."""
    if user.role not in (UserRole.ADMIN.value, UserRole.COURT_MANAGER.value):
        error = ForbiddenError("Only administrators and court managers can do this", reason="manager_only")
        raise HTTPException(status_code=error.status_code, detail=error.to_detail())
    return user
