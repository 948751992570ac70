"""
Grid State Feed - in-process implementation

Architecture:
- Use Case (after commit) → publish() → seq assigned → replay buffer → broadcaster → SSE
- One broadcast event per publish call: {'first_seq', 'seq', 'deltas': [...]}
- Sequence numbers are assigned without awaiting, so they follow call order

Limitation:
- Deltas only reach subscribers of the same process; other processes' clients
  still converge through snapshots and `changes since` polling against their
  own worker
"""

from collections import deque
from typing import Deque, List, Optional, Sequence, Tuple

from anyio.streams.memory import MemoryObjectReceiveStream

from src.platform.config.core_setting import settings
from src.platform.event.i_in_memory_broadcaster import IInMemoryEventBroadcaster
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.grid_metrics import metrics
from src.service.grid.app.dto.feed_dto import CellDelta, FeedChanges
from src.service.grid.app.interface.i_grid_feed import IGridFeed
from src.service.shared_kernel.domain.enum.cell_state import CellState


GRID_TOPIC = 'grid'


class GridFeedImpl(IGridFeed):
    def __init__(
        self,
        *,
        broadcaster: IInMemoryEventBroadcaster,
        replay_buffer_size: Optional[int] = None,
    ) -> None:
        self.broadcaster = broadcaster
        self._seq = 0
        self._replay: Deque[CellDelta] = deque(
            maxlen=replay_buffer_size or settings.FEED_REPLAY_BUFFER_SIZE
        )

    @property
    def current_seq(self) -> int:
        return self._seq

    async def publish(self, *, changes: Sequence[Tuple[str, CellState]]) -> List[CellDelta]:
        if not changes:
            return []

        deltas: List[CellDelta] = []
        for cell_id, state in changes:
            self._seq += 1
            delta = CellDelta(seq=self._seq, cell_id=cell_id, state=CellState(state))
            self._replay.append(delta)
            deltas.append(delta)
            metrics.feed_deltas.labels(state=delta.state.value).inc()

        await self.broadcaster.broadcast(
            topic=GRID_TOPIC,
            event_data={
                'first_seq': deltas[0].seq,
                'seq': deltas[-1].seq,
                'deltas': [delta.to_dict() for delta in deltas],
            },
        )
        Logger.base.debug(
            f'📢 [GRID_FEED] Published {len(deltas)} deltas '
            f'(seq {deltas[0].seq}..{deltas[-1].seq})'
        )
        return deltas

    def changes_since(self, *, since: int) -> FeedChanges:
        current = self._seq
        if since == current:
            return FeedChanges(since=since, seq=current)

        # Client ahead of us (server restarted) or behind the replay window
        oldest = self._replay[0].seq if self._replay else current + 1
        if since > current or since < oldest - 1:
            return FeedChanges(since=since, seq=current, resync_required=True)

        deltas = [delta for delta in self._replay if delta.seq > since]
        return FeedChanges(since=since, seq=current, deltas=deltas)

    async def subscribe(self) -> MemoryObjectReceiveStream[dict]:
        stream = await self.broadcaster.subscribe(topic=GRID_TOPIC)
        metrics.feed_subscribers.set(self.broadcaster.subscriber_count(topic=GRID_TOPIC))
        return stream

    async def unsubscribe(self, *, stream: MemoryObjectReceiveStream[dict]) -> None:
        await self.broadcaster.unsubscribe(topic=GRID_TOPIC, stream=stream)
        metrics.feed_subscribers.set(self.broadcaster.subscriber_count(topic=GRID_TOPIC))
