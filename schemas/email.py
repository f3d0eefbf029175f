"""schemas/email.py - Contact form and admin email models."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ContactRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    fullName: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    companyName: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    message: str = Field(..., min_length=1, max_length=5000)


class AdminEmailRequest(BaseModel):
    userId: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)


class AdminBulkEmailRequest(BaseModel):
    userIds: List[str] = Field(..., min_length=1)
    subject: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)


class EmailSendResponse(BaseModel):
    success: bool
    campaignId: Optional[str] = None
    sent: int
    failed: int
    blocked: int
