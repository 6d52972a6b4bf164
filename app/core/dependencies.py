from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.config import SESSION_COOKIE_NAME
from app.db.deps import get_db
from app.schemas.user import UserResponse
from app.services.session_store import get_session_user


def get_session_token(request: Request) -> Optional[str]:
    return request.cookies.get(SESSION_COOKIE_NAME)


def get_optional_user(
    token: Optional[str] = Depends(get_session_token),
    db: Session = Depends(get_db)
) -> Optional[UserResponse]:
    return get_session_user(db, token)


def get_current_user(
    user: Optional[UserResponse] = Depends(get_optional_user)
) -> UserResponse:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
    return user
