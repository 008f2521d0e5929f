# backend/app/repositories/spot_repository.py
"""Spot data access."""

import logging
from typing import List

from sqlalchemy.orm import Session

from ..models.spot import Spot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SpotRepository(BaseRepository[Spot]):
    def __init__(self, db: Session):
        super().__init__(db, Spot)

    def list_for_host(self, host_id: str) -> List[Spot]:
        query = self.db.query(Spot).filter(Spot.host_id == host_id).order_by(Spot.created_at.desc())
        return self._execute_query(query)
