# backend/app/schemas/notifications.py
"""Schemas for notification inbox endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import StandardizedModel


class NotificationResponse(StandardizedModel):
    """Notification inbox entry."""

    id: str
    type: str
    title: str
    body: Optional[str] = None
    booking_id: Optional[str] = None
    spot_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class NotificationListResponse(StandardizedModel):
    notifications: List[NotificationResponse]
    page: int
    limit: int


class NotificationStatusResponse(StandardizedModel):
    """Simple status response for notification actions."""

    success: bool
    message: Optional[str] = Field(None)
