from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Literal, Optional

class TextIn(BaseModel):
    content: str

    @field_validator('content')
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('content must not be empty')
        return v

class TextOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    content: str
    created_at: Optional[datetime] = None

class FileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    filename: str
    file_key: str
    size: int
    file_type: str
    created_at: Optional[datetime] = None

class UploadOut(BaseModel):
    files: list[FileOut]

class DeleteIn(BaseModel):
    kind: Literal['text', 'file']
    id: int
    file_key: Optional[str] = None

class ShareIn(BaseModel):
    file_key: str = Field(min_length=1)

class ShareLinkOut(BaseModel):
    url: str
    expires_in: int
