# tuneserver/schemas.py
from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional

# Request bodies keep every field optional: missing values are rejected by
# the service layer with a 400 instead of a framework 422.


class RequestBody(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def numbers_as_text(cls, value):
        # {"song_id": 123} counts the same song as {"song_id": "123"}
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class RegisterRequest(RequestBody):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(RequestBody):
    email: Optional[str] = None
    password: Optional[str] = None


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str


class StreamUpdateRequest(RequestBody):
    song_id: Optional[str] = None


class StreamOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    song_id: str
    streams: int


class StoreTokenRequest(RequestBody):
    token: Optional[str] = None
