from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Sequence

from uuid_utils import UUID

from src.service.grid.domain.entity.hold_entity import Hold


class IHoldRepo(ABC):
    @abstractmethod
    async def create(self, *, hold: Hold) -> Hold:
        pass

    @abstractmethod
    async def get_by_id(self, *, hold_id: UUID) -> Optional[Hold]:
        pass

    @abstractmethod
    async def get_by_checkout_session_id(self, *, checkout_session_id: str) -> Optional[Hold]:
        pass

    @abstractmethod
    async def set_checkout(
        self,
        *,
        hold_id: UUID,
        checkout_session_id: str,
        amount: int,
        currency: str,
        checkout_url: Optional[str] = None,
    ) -> bool:
        """
        Record the checkout session, only if the hold has none yet

        Returns:
            False when the hold is gone or already has a session
        """
        pass

    @abstractmethod
    async def delete(self, *, hold_id: UUID) -> bool:
        """
        Returns:
            False when the hold was already gone
        """
        pass

    @abstractmethod
    async def list_expired_ids(self, *, now: datetime, limit: int) -> List[UUID]:
        """Oldest-first ids of holds with expires_at <= now"""
        pass

    @abstractmethod
    async def delete_many(self, *, hold_ids: Sequence[UUID]) -> int:
        pass
