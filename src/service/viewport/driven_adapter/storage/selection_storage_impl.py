import hashlib
import os
from pathlib import Path
from typing import Dict, Iterable, List

import orjson

from src.platform.constant.path import SELECTION_STATE_DIR
from src.platform.logging.loguru_io import Logger
from src.service.viewport.app.interface.i_selection_storage import ISelectionStorage


class InMemorySelectionStorage(ISelectionStorage):
    def __init__(self) -> None:
        self._selections: Dict[str, List[str]] = {}

    def load(self, *, session_id: str) -> List[str]:
        return list(self._selections.get(session_id, []))

    def save(self, *, session_id: str, cell_ids: Iterable[str]) -> None:
        self._selections[session_id] = list(cell_ids)

    def clear(self, *, session_id: str) -> None:
        self._selections.pop(session_id, None)


class JsonFileSelectionStorage(ISelectionStorage):
    """
    One JSON file per browsing session under `directory`

    File content: {"session_id": "...", "cell_ids": ["0-0", ...]}
    A missing or unreadable file loads as an empty selection.
    """

    def __init__(self, *, directory: Path | str = SELECTION_STATE_DIR) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        # Session ids come from the client; hash them into a safe file name
        digest = hashlib.sha256(session_id.encode()).hexdigest()[:32]
        return self.directory / f'selection_{digest}.json'

    def load(self, *, session_id: str) -> List[str]:
        path = self._path(session_id)
        if not path.exists():
            return []
        try:
            data = orjson.loads(path.read_bytes())
        except (OSError, orjson.JSONDecodeError) as e:
            Logger.base.warning(f'⚠️ [SELECTION] Unreadable selection file {path.name}: {e}')
            return []
        cell_ids = data.get('cell_ids') if isinstance(data, dict) else None
        if not isinstance(cell_ids, list):
            return []
        return [c for c in cell_ids if isinstance(c, str)]

    def save(self, *, session_id: str, cell_ids: Iterable[str]) -> None:
        path = self._path(session_id)
        payload = orjson.dumps({'session_id': session_id, 'cell_ids': list(cell_ids)})
        tmp_path = path.with_suffix('.tmp')
        tmp_path.write_bytes(payload)
        os.replace(tmp_path, path)

    def clear(self, *, session_id: str) -> None:
        self._path(session_id).unlink(missing_ok=True)
