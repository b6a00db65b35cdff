from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

class LoginIn(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1)

class UserCreateIn(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=1)

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    is_admin: bool
    created_at: Optional[datetime] = None

class LoginOut(BaseModel):
    ok: bool = True
    user: UserOut

class ActionOkOut(BaseModel):
    ok: bool = True
    message: Optional[str] = None
