from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from app.db.base import Base

class UserSession(Base):
    """Server-side session record; the cookie only carries a signed ``sid``."""

    __tablename__ = "sessions"

    sid = Column(String, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Identity snapshot exposed to handlers without another users lookup
    email = Column(String, nullable=False)
    name = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    expires_at = Column(DateTime, nullable=False, index=True)
