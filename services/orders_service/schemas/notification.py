"""Seller notification schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.orders_service.models.enums import NotificationStatus, NotificationType


class NotificationResponse(BaseModel):
    id: uuid.UUID
    seller_id: str
    order_id: Optional[uuid.UUID] = None
    type: NotificationType
    status: NotificationStatus
    title: str
    message: str
    metadata: Optional[dict] = Field(None, validation_alias="payload")
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    unread_count: int
    page: int
    limit: int


class MarkAllReadResponse(BaseModel):
    updated: int
