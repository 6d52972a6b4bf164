import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.core.config import ENVIRONMENT, SESSION_COOKIE_NAME
from app.core.dependencies import get_current_user, get_session_token
from app.db.deps import get_db
from app.schemas.settings import MessageResponse
from app.schemas.user import UserCreate, UserLogin, UserResponse
from app.services import session_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _start_session(response: Response, db: Session, user) -> None:
    token = session_store.create_session(db, user)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=int(session_store.SESSION_MAX_AGE.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=ENVIRONMENT == "production",
    )


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: UserCreate,
    response: Response,
    db: Session = Depends(get_db)
):
    if crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=400, detail="Email already in use")

    try:
        # User and session rows commit together so a failed session leaves no orphan account
        user = crud.create_user(db, payload.email, payload.password, payload.name, commit=False)
        _start_session(response, db, user)
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        db.rollback()
        raise HTTPException(status_code=400, detail="Email already in use")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Registration failed for %s", payload.email)
        raise HTTPException(status_code=500, detail="Failed to register user")

    logger.info("Registered user %s", user.id)
    return user


@router.post("/login", response_model=UserResponse)
def login(
    payload: UserLogin,
    response: Response,
    db: Session = Depends(get_db)
):
    try:
        user = crud.authenticate(db, payload.email, payload.password)
        if not user:
            logger.info("Failed login for %s", payload.email)
            raise HTTPException(status_code=401, detail="Invalid email or password")

        session_store.prune_expired_sessions(db)
        _start_session(response, db, user)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Login failed for %s", payload.email)
        raise HTTPException(status_code=500, detail="Failed to log in")

    logger.info("User %s logged in", user.id)
    return user


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    try:
        session_store.destroy_session(db, get_session_token(request))
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to destroy session")
        raise HTTPException(status_code=500, detail="Failed to log out")

    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
def get_me(current_user: UserResponse = Depends(get_current_user)):
    return current_user
