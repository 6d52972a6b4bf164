import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app import crud
from app.db.deps import get_db
from app.core.dependencies import get_current_user
from app.schemas.prompt import EnhanceRequest, PromptResponse
from app.schemas.user import UserResponse
from app.services.enhancer import enhance_prompt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Prompts"],
    dependencies=[Depends(get_current_user)])

@router.post("/enhance", response_model=PromptResponse)
def enhance(
    payload: EnhanceRequest,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user)
):
    # 1. Call the provider (raises MissingApiKeyError / EnhancementError)
    enhanced = enhance_prompt(
        db,
        user_id=current_user.id,
        text=payload.input,
        ai_tool=payload.ai_tool,
        prompt_type=payload.prompt_type,
        image_url=payload.image_url,
        voice_url=payload.voice_url,
        context=payload.context,
    )

    # 2. Store the result
    try:
        prompt = crud.create_prompt(
            db,
            user_id=current_user.id,
            input=payload.input,
            enhanced=enhanced,
            prompt_type=payload.prompt_type,
            image_url=payload.image_url,
            voice_url=payload.voice_url,
            context=payload.context,
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to store prompt for user %s", current_user.id)
        raise HTTPException(status_code=500, detail="Failed to enhance prompt")
    logger.info("Stored prompt %s for user %s", prompt.id, current_user.id)
    return prompt

@router.get("/prompts", response_model=list[PromptResponse])
def list_prompts(
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user)
):
    return crud.get_prompts_by_user(db, current_user.id)

@router.post("/prompts/{prompt_id}/favorite", response_model=PromptResponse)
def toggle_favorite(
    prompt_id: int,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user)
):
    return crud.toggle_favorite(db, prompt_id, current_user.id)
