"""
Unit of Work Pattern - one database transaction shared by the grid repositories

Architecture:
- UoW owns the session lifecycle and commit/rollback
- Repositories receive the shared session from the UoW
- Use cases coordinate cell state, holds and submissions inside one UoW,
  so a rectangle is never observed half-claimed or half-freed
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.platform.database.orm_db_setting import Database


if TYPE_CHECKING:
    import anyio

    from src.service.grid.app.interface.i_cell_state_store import ICellStateStore
    from src.service.grid.app.interface.i_hold_repo import IHoldRepo
    from src.service.grid.app.interface.i_submission_repo import ISubmissionRepo


class AbstractUnitOfWork(abc.ABC):
    """
    Abstract Unit of Work for the Grid Service

    Responsibilities:
    - Manage database session lifecycle
    - Coordinate transactions across multiple repositories
    - Provide commit/rollback interface

    Usage:
        async with uow:
            result = await uow.cell_store.try_claim(cell_ids=..., hold_id=...)
            await uow.hold_repo.create(hold=...)
            await uow.commit()

    Leaving the block without commit() rolls back.
    """

    cell_store: ICellStateStore
    hold_repo: IHoldRepo
    submission_repo: ISubmissionRepo

    async def __aenter__(self) -> AbstractUnitOfWork:
        return self

    async def __aexit__(self, *args) -> None:
        await self.rollback()

    async def commit(self) -> None:
        """Commit the transaction"""
        await self._commit()

    @abc.abstractmethod
    async def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    SQLAlchemy implementation of Unit of Work

    Usage in use case:
        async with self.uow_factory() as uow:
            await uow.cell_store.release(cell_ids=..., hold_id=...)
            await uow.commit()

    On sqlite, write units of work hold the database write lock for their
    whole lifetime; read_only units skip it (WAL readers never block).
    """

    def __init__(self, database: Database, *, read_only: bool = False) -> None:
        self.database = database
        self.read_only = read_only
        self.session: Optional[AsyncSession] = None
        self._lock: Optional[anyio.Lock] = None

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        from src.service.grid.driven_adapter.repo.cell_state_store_impl import (
            CellStateStoreImpl,
        )
        from src.service.grid.driven_adapter.repo.hold_repo_impl import HoldRepoImpl
        from src.service.grid.driven_adapter.repo.submission_repo_impl import (
            SubmissionRepoImpl,
        )

        if self.database.is_sqlite and not self.read_only:
            self._lock = self.database.write_lock()
            await self._lock.acquire()

        try:
            self.session = self.database.create_session()
        except Exception:
            self._release_lock()
            raise

        # Repositories share the UoW session
        self.cell_store = CellStateStoreImpl(session=self.session)
        self.hold_repo = HoldRepoImpl(session=self.session)
        self.submission_repo = SubmissionRepoImpl(session=self.session)

        await super().__aenter__()
        return self

    async def __aexit__(self, *args) -> None:
        try:
            await super().__aexit__(*args)
        finally:
            if self.session is not None:
                await self.session.close()
                self.session = None
            self._release_lock()

    async def _commit(self) -> None:
        assert self.session is not None, 'UnitOfWork used outside of async with'
        await self.session.commit()

    async def rollback(self) -> None:
        if self.session is not None:
            await self.session.rollback()

    def _release_lock(self) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None
