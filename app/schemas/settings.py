from typing import Optional

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

# Fields are optional so a missing key/model gets the route's own 400 message
class ApiKeyUpdate(BaseModel):
    key: Optional[str] = None
    model: Optional[str] = None

class ApiKeyStatus(BaseModel):
    has_key: bool
    model: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True

class ModelUpdate(BaseModel):
    model: Optional[str] = None

class ModelResponse(BaseModel):
    model: str

class MessageResponse(BaseModel):
    message: str
