# backend/app/routes/v1/notifications.py
"""
Notification inbox routes - API v1

Endpoints:
    GET / - Newest notifications first
    POST /{notification_id}/read - Mark one notification as read
"""

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query

from ...api.dependencies import get_current_user_id, get_notification_service
from ...core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...core.exceptions import DomainException
from ...schemas.notifications import (
    NotificationListResponse,
    NotificationResponse,
    NotificationStatusResponse,
)
from ...services.notification_service import NotificationService
from ._shared import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications-v1"])

NotificationId = Annotated[str, Path(pattern=ULID_PATH_PATTERN)]


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    try:
        notifications = await asyncio.to_thread(
            notification_service.list_notifications,
            current_user_id,
            (page - 1) * limit,
            limit,
        )
        return NotificationListResponse(
            notifications=[NotificationResponse.model_validate(n) for n in notifications],
            page=page,
            limit=limit,
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{notification_id}/read", response_model=NotificationStatusResponse)
async def mark_notification_read(
    notification_id: NotificationId,
    current_user_id: str = Depends(get_current_user_id),
    notification_service: NotificationService = Depends(get_notification_service),
) -> NotificationStatusResponse:
    try:
        await asyncio.to_thread(notification_service.mark_read, current_user_id, notification_id)
        return NotificationStatusResponse(success=True, message="Notification marked as read")
    except DomainException as e:
        handle_domain_exception(e)
