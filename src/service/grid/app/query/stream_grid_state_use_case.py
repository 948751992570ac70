"""
Stream Grid State Use Case

Full snapshot on (re)connect, ordered cell deltas afterwards. Used by the
snapshot / changes endpoints (polling) and the SSE stream (push).
"""

from collections.abc import AsyncGenerator
from typing import Callable, Self

import anyio
from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.service.grid.app.dto.feed_dto import FeedChanges, FeedSnapshot
from src.service.grid.app.interface.i_grid_feed import IGridFeed
from src.service.grid.domain.enum.feed_event_type import FeedEventType


class StreamGridStateUseCase:
    def __init__(
        self, *, uow_factory: Callable[..., AbstractUnitOfWork], grid_feed: IGridFeed
    ) -> None:
        self.uow_factory = uow_factory
        self.grid_feed = grid_feed

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[..., AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
        grid_feed: IGridFeed = Depends(Provide[Container.grid_feed]),
    ) -> Self:
        return cls(uow_factory=uow_factory, grid_feed=grid_feed)

    async def snapshot(self) -> FeedSnapshot:
        """
        Every non-free cell, tagged with the feed sequence it is at least as new as.

        The sequence is read before the store, so applying deltas after `seq`
        on top of the snapshot never loses a change.
        """
        seq = self.grid_feed.current_seq
        async with self.uow_factory(read_only=True) as uow:
            cells = await uow.cell_store.list_non_free()
        return FeedSnapshot(seq=seq, cells=cells)

    def changes_since(self, *, since: int) -> FeedChanges:
        return self.grid_feed.changes_since(since=since)

    async def stream(self) -> AsyncGenerator[dict, None]:
        """
        Yields:
            Dict with event_type plus either snapshot fields (seq, cells)
            or one delta (seq, cell_id, state)
        """
        # Subscribe first so nothing published while the snapshot is read is lost
        receive_stream = await self.grid_feed.subscribe()
        try:
            snapshot = await self.snapshot()
            yield {'event_type': FeedEventType.SNAPSHOT, **snapshot.to_dict()}
            last_seq = snapshot.seq

            async for batch in receive_stream:
                if batch['seq'] <= last_seq:
                    continue

                if batch['first_seq'] > last_seq + 1:
                    # Batches were dropped for this subscriber: resync
                    Logger.base.warning(
                        f'[SSE] Feed gap {last_seq}..{batch["first_seq"]}, resending snapshot'
                    )
                    snapshot = await self.snapshot()
                    yield {'event_type': FeedEventType.SNAPSHOT, **snapshot.to_dict()}
                    last_seq = max(snapshot.seq, batch['seq'])
                    continue

                for delta in batch['deltas']:
                    if delta['seq'] > last_seq:
                        yield {'event_type': FeedEventType.CELL_CHANGED, **delta}
                last_seq = batch['seq']

        except anyio.get_cancelled_exc_class():
            Logger.base.info('[SSE] Client disconnected from grid stream')
            raise
        except Exception as e:
            Logger.base.error(f'[SSE] Error in grid stream: {type(e).__name__}: {e}')
            raise
        finally:
            with anyio.CancelScope(shield=True):
                await self.grid_feed.unsubscribe(stream=receive_stream)
