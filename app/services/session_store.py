"""Server-side sessions backed by the ``sessions`` table.

The browser only holds a signed token naming the session id; the identity
itself lives in the database, so logging out is a row delete.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import ALGORITHM, SESSION_MAX_AGE_DAYS, SESSION_SECRET
from app.models.session import UserSession
from app.models.user import User
from app.schemas.user import UserResponse

logger = logging.getLogger(__name__)

SESSION_MAX_AGE = timedelta(days=SESSION_MAX_AGE_DAYS)


def encode_session_token(sid: str) -> str:
    return jwt.encode({"sid": sid}, SESSION_SECRET, algorithm=ALGORITHM)


def decode_session_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, SESSION_SECRET, algorithms=[ALGORITHM])
    except JWTError:
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) else None


def create_session(db: Session, user: User) -> str:
    """Persist a new session for ``user`` and return the cookie token."""
    now = datetime.utcnow()
    record = UserSession(
        sid=secrets.token_urlsafe(32),
        user_id=user.id,
        email=user.email,
        name=user.name,
        created_at=now,
        expires_at=now + SESSION_MAX_AGE,
    )
    db.add(record)
    db.commit()
    return encode_session_token(record.sid)


def get_session_user(db: Session, token: Optional[str]) -> Optional[UserResponse]:
    if not token:
        return None
    sid = decode_session_token(token)
    if sid is None:
        return None

    record = db.query(UserSession).filter(UserSession.sid == sid).first()
    if record is None:
        return None
    if record.expires_at <= datetime.utcnow():
        db.delete(record)
        db.commit()
        return None

    return UserResponse(id=record.user_id, email=record.email, name=record.name)


def destroy_session(db: Session, token: Optional[str]) -> None:
    sid = decode_session_token(token) if token else None
    if sid is None:
        return
    db.query(UserSession).filter(UserSession.sid == sid).delete(synchronize_session=False)
    db.commit()


def prune_expired_sessions(db: Session) -> int:
    removed = db.query(UserSession).filter(
        UserSession.expires_at <= datetime.utcnow()
    ).delete(synchronize_session=False)
    db.commit()
    if removed:
        logger.info("Pruned %d expired sessions", removed)
    return removed
