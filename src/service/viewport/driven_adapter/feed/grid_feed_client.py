"""
Grid Feed Client

Keeps a CellSnapshot in sync with the server's state feed over HTTP:
full snapshot on (re)connect, then ordered deltas via `/changes?since=`.
Whenever the server reports that its replay buffer no longer reaches back
far enough, or a delta arrives out of order, the client falls back to a
fresh snapshot.
"""

from typing import Callable, Optional

import anyio
import httpx

from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import inject_trace_context
from src.service.viewport.domain.cell_snapshot import CellSnapshot


class GridFeedClient:
    def __init__(
        self,
        *,
        client: httpx.AsyncClient,
        snapshot: CellSnapshot,
        base_path: str = '/api/grid',
        on_update: Optional[Callable[[], None]] = None,
    ) -> None:
        self.client = client
        self.snapshot = snapshot
        self.base_path = base_path.rstrip('/')
        self.on_update = on_update
        self._synced = False

    async def resync(self) -> None:
        response = await self.client.get(
            f'{self.base_path}/snapshot', headers=inject_trace_context()
        )
        response.raise_for_status()
        data = response.json()
        self.snapshot.apply_snapshot(seq=data['seq'], cells=data['cells'])
        self._synced = True
        Logger.base.info(
            f'📥 [FEED CLIENT] Snapshot at seq {data["seq"]}: {len(data["cells"])} non-free cells'
        )
        self._notify()

    async def poll(self) -> int:
        """
        One sync step

        Returns:
            Number of deltas applied (a resync counts as 0)
        """
        if not self._synced or self.snapshot.resync_needed:
            await self.resync()
            return 0

        response = await self.client.get(
            f'{self.base_path}/changes',
            params={'since': self.snapshot.seq},
            headers=inject_trace_context(),
        )
        response.raise_for_status()
        data = response.json()

        if data['resync_required']:
            Logger.base.info(
                f'🔁 [FEED CLIENT] Server asked for resync after seq {data["since"]}'
            )
            await self.resync()
            return 0

        applied = self.snapshot.apply_deltas(data['deltas'])
        if self.snapshot.resync_needed:
            await self.resync()
            return 0
        if applied:
            self._notify()
        return applied

    async def run(self, *, interval_seconds: float = 2.0) -> None:
        """Poll forever; transport errors are logged and retried on the next tick"""
        while True:
            try:
                await self.poll()
            except httpx.HTTPError as e:
                self._synced = False
                Logger.base.warning(f'⚠️ [FEED CLIENT] Feed request failed: {e}')
            await anyio.sleep(interval_seconds)

    def _notify(self) -> None:
        if self.on_update is not None:
            self.on_update()
