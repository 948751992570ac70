"""
Chunking for large id lists

A 1000x1000 rectangle is a million cell ids; IN (...) lists and executemany
batches are bounded so statement size never depends on rectangle size.
"""

from typing import Iterator, List, Optional, Sequence, TypeVar

from src.platform.config.core_setting import settings


_T = TypeVar('_T')


def chunked(items: Sequence[_T], size: Optional[int] = None) -> Iterator[List[_T]]:
    step = size or settings.DB_ID_CHUNK_SIZE
    for start in range(0, len(items), step):
        yield list(items[start : start + step])


def unique_in_order(items: Sequence[_T]) -> List[_T]:
    return list(dict.fromkeys(items))
