# backend/app/services/push_notification_service.py
"""
Push notification delivery through Firebase Cloud Messaging.

Each user may register several device tokens. A send fans out to every
active token; one failing token is logged and skipped so the remaining
devices still receive the message. Tokens FCM reports as unregistered are
deactivated.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, exceptions as firebase_exceptions, messaging
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ValidationException
from ..repositories import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


def get_firebase_app() -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        if settings.firebase_credentials_file:
            cred = credentials.Certificate(settings.firebase_credentials_file)
        else:
            cred = credentials.ApplicationDefault()
        app = firebase_admin.initialize_app(cred, options)
        logger.info("Firebase Admin initialized")
        return app


def _stringify_data(data: Optional[Dict[str, Any]]) -> Dict[str, str]:
    # FCM only accepts string values in the data payload
    return {str(key): str(value) for key, value in (data or {}).items() if value is not None}


class PushNotificationService(BaseService):
    """Service for delivering push notifications to registered devices."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.device_token_repository = RepositoryFactory.create_device_token_repository(db)

    @staticmethod
    def is_configured() -> bool:
        return bool(settings.push_notifications_enabled)

    def send(
        self,
        token: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        image: Optional[str] = None,
    ) -> str:
        """Send one message to one device; returns the FCM message id."""
        if not token:
            raise ValidationException("Device token is required")
        if not title or not body:
            raise ValidationException("Notification title and body are required")

        message = messaging.Message(
            token=token,
            notification=messaging.Notification(
                title=title,
                body=body,
                image=image if image and image.strip() else None,
            ),
            data=_stringify_data(data),
        )
        message_id = messaging.send(message, app=get_firebase_app())
        self.logger.debug(f"Push sent: {message_id}")
        return message_id

    @BaseService.measure_operation("send_push_to_user")
    def send_to_user(
        self,
        user_id: str,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, int]:
        """
        Send to every active device of a user.

        Returns:
            dict with 'sent', 'failed', 'expired' counts
        """
        if not self.is_configured():
            self.logger.warning("Push notifications disabled; skipping send")
            return {"sent": 0, "failed": 0, "expired": 0}

        tokens = self.device_token_repository.get_active_tokens(user_id)
        sent = failed = expired = 0
        delivered_ids = []

        for device in tokens:
            try:
                self.send(device.token, title, body, data)
                sent += 1
                delivered_ids.append(device.id)
            except messaging.UnregisteredError:
                expired += 1
                self.logger.info(
                    "Device token unregistered; deactivating token_id=%s user_id=%s",
                    device.id,
                    user_id,
                )
                self.device_token_repository.deactivate(device.token)
            except (firebase_exceptions.FirebaseError, ValueError) as exc:
                failed += 1
                self.logger.error("Push send failed for token_id=%s: %s", device.id, exc)

        self.device_token_repository.touch(delivered_ids)
        return {"sent": sent, "failed": failed, "expired": expired}
