from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

AiTool = Literal["replit", "cursor", "v0"]
PromptType = Literal["create", "enhance"]

class EnhanceRequest(BaseModel):
    input: str
    ai_tool: AiTool
    prompt_type: PromptType
    image_url: Optional[str] = None
    voice_url: Optional[str] = None
    context: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("input")
    @classmethod
    def input_not_empty(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("prompt_empty", "Please enter a prompt")
        return value

class PromptResponse(BaseModel):
    id: int
    user_id: int
    input: str
    enhanced: str
    favorite: str  # "true" | "false"
    timestamp: Optional[datetime] = None
    prompt_type: str
    image_url: Optional[str] = None
    voice_url: Optional[str] = None
    context: Optional[str] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True
