from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Optional


class EventPayload(BaseModel):
    # Clients send camelCase keys
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class JoinPayload(EventPayload):
    room_id: Optional[str] = Field(None, alias="roomId")
    user_name: Optional[str] = Field(None, alias="userName")

class CodeChangePayload(EventPayload):
    room_id: Optional[str] = Field(None, alias="roomId")
    code: str

class LanguageChangePayload(EventPayload):
    room_id: Optional[str] = Field(None, alias="roomId")
    language: Optional[str] = None

class TypingPayload(EventPayload):
    room_id: Optional[str] = Field(None, alias="roomId")
    user_name: Optional[str] = Field(None, alias="userName")

class CompileCodePayload(EventPayload):
    room_id: Optional[str] = Field(None, alias="roomId")
    code: str = ""
    language: Optional[str] = None
    version: Optional[str] = "*"
    stdin: Optional[str] = None

class ReviewPayload(EventPayload):
    room_id: Optional[str] = Field(None, alias="roomId")
    code: str = ""


class Envelope(BaseModel):
    event: str
    data: Any = None
