"""
In-memory Event Broadcaster Implementation

Singleton broadcaster distributing grid feed events
from use cases to SSE endpoints.
"""

from typing import Dict, List

from anyio import WouldBlock, create_memory_object_stream
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from src.platform.logging.loguru_io import Logger


class InMemoryEventBroadcasterImpl:
    """
    In-memory pub/sub keyed by topic

    Architecture:
    - Use Case → GridFeed.publish() → broadcast() → SSE Endpoint
    - Each topic has a list of subscriber stream tuples
    - Auto-cleanup empty subscriber lists

    Memory Management:
    - Stream max buffer: max_buffer_size events per subscriber
    - Drop policy: drop if stream full (send_nowait raises WouldBlock); a slow
      subscriber detects the sequence gap and resyncs from a snapshot
    - Cleanup: Remove empty lists on unsubscribe and close streams
    """

    def __init__(self, *, max_buffer_size: int = 10) -> None:
        self._max_buffer_size = max_buffer_size
        self._subscribers: Dict[
            str, List[tuple[MemoryObjectSendStream[dict], MemoryObjectReceiveStream[dict]]]
        ] = {}

    async def subscribe(self, *, topic: str) -> MemoryObjectReceiveStream[dict]:
        send_stream, receive_stream = create_memory_object_stream[dict](
            max_buffer_size=self._max_buffer_size
        )
        self._subscribers.setdefault(topic, []).append((send_stream, receive_stream))

        Logger.base.debug(
            f'📡 [BROADCASTER] Subscribed to {topic} '
            f'(total subscribers: {len(self._subscribers[topic])})'
        )
        return receive_stream

    async def broadcast(self, *, topic: str, event_data: dict) -> None:
        subscribers = self._subscribers.get(topic)
        if not subscribers:
            return

        delivered = 0
        dropped = 0
        for send_stream, _ in subscribers:
            try:
                send_stream.send_nowait(event_data)
                delivered += 1
            except WouldBlock:
                dropped += 1
                Logger.base.warning(
                    f'⚠️ [BROADCASTER] Stream full on {topic}, dropping seq={event_data.get("seq")}'
                )

        Logger.base.debug(
            f'📡 [BROADCASTER] Broadcast to {topic}: delivered={delivered}, dropped={dropped}'
        )

    async def unsubscribe(self, *, topic: str, stream: MemoryObjectReceiveStream[dict]) -> None:
        subscribers = self._subscribers.get(topic)
        if subscribers is None:
            return

        for i, (send_stream, receive_stream) in enumerate(subscribers):
            if receive_stream is stream:
                await send_stream.aclose()
                await receive_stream.aclose()
                subscribers.pop(i)
                Logger.base.debug(
                    f'📡 [BROADCASTER] Unsubscribed from {topic} (remaining: {len(subscribers)})'
                )
                break

        if not subscribers:
            del self._subscribers[topic]

    def subscriber_count(self, *, topic: str) -> int:
        return len(self._subscribers.get(topic, []))
