from datetime import datetime
from sqlalchemy import Column, String, Integer, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from app.db.base import Base

class Prompt(Base):
    __tablename__ = "prompts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    input = Column(Text, nullable=False)
    enhanced = Column(Text, nullable=False)

    # Kept as text ("true" / "false") for compatibility with existing rows
    favorite = Column(String, nullable=False, default="false")

    prompt_type = Column(String, nullable=False)  # create | enhance
    image_url = Column(Text, nullable=True)
    voice_url = Column(Text, nullable=True)
    context = Column(Text, nullable=True)

    timestamp = Column(DateTime, default=datetime.utcnow, index=True)

    owner = relationship("User", back_populates="prompts")
