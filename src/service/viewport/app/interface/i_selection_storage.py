from abc import ABC, abstractmethod
from typing import Iterable, List


class ISelectionStorage(ABC):
    """Persists a browsing session's in-progress selection across reloads"""

    @abstractmethod
    def load(self, *, session_id: str) -> List[str]:
        """Stored cell ids, empty when nothing was saved"""
        pass

    @abstractmethod
    def save(self, *, session_id: str, cell_ids: Iterable[str]) -> None:
        pass

    @abstractmethod
    def clear(self, *, session_id: str) -> None:
        pass
