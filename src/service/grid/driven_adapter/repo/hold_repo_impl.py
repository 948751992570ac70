from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from uuid_utils import UUID

from src.platform.logging.loguru_io import Logger
from src.service.grid.app.interface.i_hold_repo import IHoldRepo
from src.service.grid.domain.entity.hold_entity import Hold
from src.service.grid.driven_adapter.model.hold_model import HoldModel
from src.service.grid.driven_adapter.repo.id_chunk_helper import chunked
from src.service.shared_kernel.domain.value_object.grid_address import (
    Rectangle,
    parse_cell_id,
)


class HoldRepoImpl(IHoldRepo):
    def __init__(self, *, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _to_entity(db_hold: HoldModel) -> Hold:
        return Hold(
            id=UUID(db_hold.id),
            contact=db_hold.contact,
            rectangle=Rectangle(
                top_left=parse_cell_id(db_hold.top_left),
                bottom_right=parse_cell_id(db_hold.bottom_right),
            ),
            cell_ids=list(db_hold.cell_ids),
            created_at=db_hold.created_at,
            expires_at=db_hold.expires_at,
            checkout_session_id=db_hold.checkout_session_id,
            checkout_url=db_hold.checkout_url,
            amount=db_hold.amount,
            currency=db_hold.currency,
        )

    @Logger.io(truncate_content=True)
    async def create(self, *, hold: Hold) -> Hold:
        db_hold = HoldModel(
            id=str(hold.id),
            contact=hold.contact,
            top_left=hold.rectangle.top_left.cell_id,
            bottom_right=hold.rectangle.bottom_right.cell_id,
            cell_ids=list(hold.cell_ids),
            cell_count=hold.cell_count,
            created_at=hold.created_at,
            expires_at=hold.expires_at,
            checkout_session_id=hold.checkout_session_id,
            checkout_url=hold.checkout_url,
            amount=hold.amount,
            currency=hold.currency,
        )
        self.session.add(db_hold)
        await self.session.flush()
        return hold

    @Logger.io(truncate_content=True)
    async def get_by_id(self, *, hold_id: UUID) -> Optional[Hold]:
        result = await self.session.execute(select(HoldModel).where(HoldModel.id == str(hold_id)))
        db_hold = result.scalar_one_or_none()
        return self._to_entity(db_hold) if db_hold else None

    @Logger.io(truncate_content=True)
    async def get_by_checkout_session_id(self, *, checkout_session_id: str) -> Optional[Hold]:
        result = await self.session.execute(
            select(HoldModel).where(HoldModel.checkout_session_id == checkout_session_id)
        )
        db_hold = result.scalar_one_or_none()
        return self._to_entity(db_hold) if db_hold else None

    @Logger.io
    async def set_checkout(
        self,
        *,
        hold_id: UUID,
        checkout_session_id: str,
        amount: int,
        currency: str,
        checkout_url: Optional[str] = None,
    ) -> bool:
        result = await self.session.execute(
            update(HoldModel)
            .where(HoldModel.id == str(hold_id), HoldModel.checkout_session_id.is_(None))
            .values(
                checkout_session_id=checkout_session_id,
                checkout_url=checkout_url,
                amount=amount,
                currency=currency,
            )
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    @Logger.io
    async def delete(self, *, hold_id: UUID) -> bool:
        result = await self.session.execute(
            delete(HoldModel)
            .where(HoldModel.id == str(hold_id))
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    @Logger.io
    async def list_expired_ids(self, *, now: datetime, limit: int) -> List[UUID]:
        result = await self.session.execute(
            select(HoldModel.id)
            .where(HoldModel.expires_at <= now)
            .order_by(HoldModel.expires_at)
            .limit(limit)
        )
        return [UUID(hold_id) for hold_id in result.scalars().all()]

    @Logger.io
    async def delete_many(self, *, hold_ids: Sequence[UUID]) -> int:
        deleted = 0
        for chunk in chunked([str(h) for h in hold_ids]):
            result = await self.session.execute(
                delete(HoldModel)
                .where(HoldModel.id.in_(chunk))
                .execution_options(synchronize_session=False)
            )
            deleted += result.rowcount or 0
        return deleted
