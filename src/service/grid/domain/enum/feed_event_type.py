from enum import StrEnum


class FeedEventType(StrEnum):
    """SSE event names on the grid state stream"""

    SNAPSHOT = 'snapshot'
    CELL_CHANGED = 'cell_changed'
