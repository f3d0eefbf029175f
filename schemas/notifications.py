"""schemas/notifications.py - Pydantic models for persisted notifications and admin sends."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


NotificationType = Literal["info", "success", "warning", "error"]


class NotificationOut(BaseModel):
    id: str
    title: str
    message: str
    type: str
    read: bool
    createdAt: datetime


class NotificationListResponse(BaseModel):
    notifications: List[NotificationOut]
    total: int
    unreadCount: int
    limit: int
    offset: int


class UnreadCountResponse(BaseModel):
    count: int


class SendNotificationRequest(BaseModel):
    userId: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: NotificationType = "info"


class SendBulkNotificationRequest(BaseModel):
    userIds: List[str] = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    type: NotificationType = "info"


class SendNotificationResponse(BaseModel):
    success: bool = True
    notification: NotificationOut
    delivered: bool


class SendBulkNotificationResponse(BaseModel):
    success: bool = True
    sent: int
    blocked: int
    online: int
    offline: int


class NotificationUser(BaseModel):
    id: str
    name: Optional[str] = None
    email: str


class AdminNotificationOut(NotificationOut):
    user: Optional[NotificationUser] = None


class AdminNotificationListResponse(BaseModel):
    notifications: List[AdminNotificationOut]
    total: int
    limit: int
    offset: int
