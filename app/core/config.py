import os
from dotenv import load_dotenv

load_dotenv()

SESSION_SECRET = os.getenv("SESSION_SECRET")
if not SESSION_SECRET:
    raise RuntimeError("SESSION_SECRET environment variable is required")

ALGORITHM = os.getenv("ALGORITHM", "HS256")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./prompt_enhancer.db")

SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")
SESSION_MAX_AGE_DAYS = int(os.getenv("SESSION_MAX_AGE_DAYS", "7"))

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
    ).split(",")
    if origin.strip()
]

# Seconds; applies to the completion client and the voice clip download
OPENAI_TIMEOUT = float(os.getenv("OPENAI_TIMEOUT", "60"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
