"""schemas/cms.py - Pydantic models for CMS pages."""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


PageStatus = Literal["draft", "published"]


class CmsPageOut(BaseModel):
    slug: str
    title: str
    content: Any = None
    status: str
    updatedBy: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class CmsPageUpsert(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    # Free-form JSON, the frontend owns the shape
    content: Any = None
    status: PageStatus = "published"
