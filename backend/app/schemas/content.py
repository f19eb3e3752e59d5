"""API schemas for post generation."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GeneratePostRequest(BaseModel):
    topic: Optional[str] = None
    tone: Optional[str] = None
    request_type: Optional[str] = Field(alias="type", default=None)
    prompt: Optional[str] = None
    category: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class GeneratePostResponse(BaseModel):
    content: str
