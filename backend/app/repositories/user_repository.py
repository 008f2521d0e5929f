# backend/app/repositories/user_repository.py
"""User, vehicle and device-token data access."""

from datetime import datetime, timezone
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..models.user import DeviceToken, User, Vehicle
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.find_one_by(email=email)


class VehicleRepository(BaseRepository[Vehicle]):
    def __init__(self, db: Session):
        super().__init__(db, Vehicle)

    def get_owned(self, vehicle_id: str, user_id: str) -> Optional[Vehicle]:
        return self.find_one_by(id=vehicle_id, user_id=user_id)


class DeviceTokenRepository(BaseRepository[DeviceToken]):
    """Push tokens registered by users' devices."""

    def __init__(self, db: Session):
        super().__init__(db, DeviceToken)

    def get_active_tokens(self, user_id: str) -> List[DeviceToken]:
        query = self.db.query(DeviceToken).filter(
            DeviceToken.user_id == user_id, DeviceToken.is_active.is_(True)
        )
        return self._execute_query(query)

    def deactivate(self, token: str) -> bool:
        """Disable a token the push provider reported as unregistered."""
        entity = self.find_one_by(token=token)
        if entity is None:
            return False
        entity.is_active = False
        self.db.flush()
        return True

    def touch(self, token_ids: List[str]) -> None:
        if not token_ids:
            return
        now = datetime.now(timezone.utc)
        self.db.query(DeviceToken).filter(DeviceToken.id.in_(token_ids)).update(
            {DeviceToken.last_used_at: now}, synchronize_session=False
        )
        self.db.flush()
