"""schemas/users.py - Pydantic models for profiles, user administration and admin config."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class UserOut(BaseModel):
    id: str
    name: Optional[str] = None
    email: str
    role: str
    banned: bool = False
    banReason: Optional[str] = None
    banExpires: Optional[datetime] = None
    wantsNotifications: bool = True
    wantsNewsletter: bool = True
    createdAt: Optional[datetime] = None


class PreferencesUpdate(BaseModel):
    wantsNotifications: Optional[bool] = None
    wantsNewsletter: Optional[bool] = None


class UserListResponse(BaseModel):
    users: List[UserOut]
    total: int
    limit: int
    offset: int


class CreateUserRequest(BaseModel):
    email: EmailStr
    name: Optional[str] = Field(None, max_length=255)
    role: str = "user"


class SetRoleRequest(BaseModel):
    role: str


class BanUserRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)
    expiresInDays: Optional[int] = Field(None, ge=1)


SearchField = Literal["email", "name"]


# =====================================================================
# SECTION: ADMIN CONFIG
# =====================================================================

class AdminConfigResponse(BaseModel):
    key: str
    value: Optional[str] = None
    description: Optional[str] = None
    updated_at: Optional[datetime] = None


class AdminConfigUpdatePayload(BaseModel):
    value: str
    description: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None


# =====================================================================
# SECTION: CUSTOMERS
# =====================================================================

class CustomerOut(BaseModel):
    id: str
    name: Optional[str] = None
    email: str
    banned: bool = False
    banReason: Optional[str] = None
    banExpires: Optional[datetime] = None
    wantsNotifications: bool = True
    wantsNewsletter: bool = True
    preferencesUpdatedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class CustomerListResponse(BaseModel):
    customers: List[CustomerOut]
    total: int
    limit: int
    offset: int


class CustomerPreferencesResponse(BaseModel):
    success: bool
    customer: CustomerOut


class CustomerStats(BaseModel):
    totalCustomers: int
    bannedCustomers: int
    wantsNotifications: int
    wantsNewsletter: int
    newThisMonth: int
