"""
In-memory Event Broadcaster Interface

Provides pub/sub mechanism for distributing cell-state deltas
from use cases to SSE endpoints within the same process.
"""

from typing import Protocol

from anyio.streams.memory import MemoryObjectReceiveStream


class IInMemoryEventBroadcaster(Protocol):
    """
    Interface for in-memory event broadcasting

    Used to fan out grid changes (hold created/released, cells occupied/vacated)
    to every connected feed subscriber in real-time.

    Uses anyio's MemoryObjectStream for better async support and type safety.
    """

    async def subscribe(self, *, topic: str) -> MemoryObjectReceiveStream[dict]:
        """
        Subscribe to a topic

        Args:
            topic: Topic name (e.g. 'grid')

        Returns:
            MemoryObjectReceiveStream that will receive event dictionaries
        """
        ...

    async def broadcast(self, *, topic: str, event_data: dict) -> None:
        """
        Broadcast event to all subscribers of this topic

        Note:
            - Silently ignores if no subscribers exist
            - Drops event if subscriber stream is full (prevents blocking)
        """
        ...

    async def unsubscribe(self, *, topic: str, stream: MemoryObjectReceiveStream[dict]) -> None:
        """
        Unsubscribe and cleanup

        Note:
            - Removes empty subscriber lists to prevent memory leaks
            - Safe to call with non-existent stream
        """
        ...

    def subscriber_count(self, *, topic: str) -> int: ...
