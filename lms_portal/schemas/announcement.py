from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    type: Literal["info", "success", "warning", "error"] = "info"


class AnnouncementRead(BaseModel):
    id: int
    title: str
    content: str
    type: str
    created_at: datetime

    class Config:
        from_attributes = True
