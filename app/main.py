import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import CORS_ORIGINS, LOG_LEVEL
from app.core.exceptions import register_exception_handlers
from app.db.init_db import init_db
from app.api.auth import router as auth_router
from app.api.prompts import router as prompt_router
from app.api.settings import router as settings_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(title="Prompt Enhancer Backend")

# Cookies are sent cross-origin, so origins must be explicit
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Ensure tables are created
init_db()

app.include_router(auth_router)
app.include_router(prompt_router)
app.include_router(settings_router)

@app.get("/")
def root():
    return {"status": "Prompt enhancer backend running"}
