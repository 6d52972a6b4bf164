import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.db.deps import get_db
from app.core.dependencies import get_current_user
from app.schemas.settings import (
    ApiKeyStatus,
    ApiKeyUpdate,
    MessageResponse,
    ModelResponse,
    ModelUpdate,
)
from app.schemas.user import UserResponse
from app.services import model_preferences

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["Settings"],
    dependencies=[Depends(get_current_user)])

# --- Process-wide model preference (declared first: more specific paths) ---

@router.post("/{provider}/model", response_model=MessageResponse)
def update_model(provider: str, payload: ModelUpdate):
    if not payload.model:
        raise HTTPException(status_code=400, detail="Model selection is required")

    model_preferences.set_model(provider, payload.model)
    logger.info("Default model for %s set to %s", provider, payload.model)
    return {"message": "Model updated successfully"}

@router.get("/{provider}/model", response_model=ModelResponse)
def get_model(provider: str):
    return {"model": model_preferences.get_model(provider)}

# --- Per-user API keys ---

@router.post("/{provider}", response_model=MessageResponse)
def update_api_key(
    provider: str,
    payload: ApiKeyUpdate,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user)
):
    if not payload.key or not payload.model:
        raise HTTPException(status_code=400, detail="API key and model are required")

    try:
        crud.set_api_key(db, current_user.id, provider, payload.key, payload.model)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store %s key for user %s", provider, current_user.id)
        raise HTTPException(status_code=500, detail="Failed to update API key")

    logger.info("Updated %s key for user %s", provider, current_user.id)
    return {"message": "API key updated successfully"}

@router.get("/{provider}", response_model=ApiKeyStatus, response_model_exclude_none=True)
def get_api_key_status(
    provider: str,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user)
):
    try:
        record = crud.get_api_key(db, current_user.id, provider)
    except SQLAlchemyError:
        logger.exception("Failed to read %s key for user %s", provider, current_user.id)
        raise HTTPException(status_code=500, detail="Failed to get API key status")

    # Never return the key itself, only whether one exists
    return ApiKeyStatus(has_key=record is not None, model=record.model if record else None)

@router.get("", response_model=dict[str, ApiKeyStatus])
def list_api_keys(
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user)
):
    try:
        records = crud.get_all_api_keys(db, current_user.id)
    except SQLAlchemyError:
        logger.exception("Failed to list keys for user %s", current_user.id)
        raise HTTPException(status_code=500, detail="Failed to get API keys")

    return {
        record.provider: ApiKeyStatus(has_key=True, model=record.model)
        for record in records
    }
