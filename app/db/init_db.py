from app.db.session import engine
from app.db.base import Base

# Imported so their tables register on Base.metadata
from app.models.user import User  # noqa: F401
from app.models.api_key import ApiKey  # noqa: F401
from app.models.prompt import Prompt  # noqa: F401
from app.models.session import UserSession  # noqa: F401


def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)
