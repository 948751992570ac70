import anyio
from anyio.abc import TaskGroup

from src.platform.logging.loguru_io import Logger
from src.platform.metrics.grid_metrics import metrics
from src.service.grid.app.command.reap_expired_holds_use_case import ReapExpiredHoldsUseCase


class HoldReaper:
    """Periodic expiry sweep running inside the application task group"""

    def __init__(
        self,
        *,
        use_case: ReapExpiredHoldsUseCase,
        interval_seconds: float = 30.0,
    ) -> None:
        self.use_case = use_case
        self.interval_seconds = interval_seconds

    async def start(self, *, task_group: TaskGroup) -> None:
        task_group.start_soon(self._reap_loop)  # pyrefly: ignore[bad-argument-type]
        Logger.base.info(f'🧹 [Hold Reaper] Started, sweeping every {self.interval_seconds}s')

    async def sweep_once(self) -> None:
        try:
            result = await self.use_case.execute()
            metrics.record_reaper_sweep(result='success', cells_freed=result.total_cells_freed)
        except Exception as e:
            # A failed sweep is retried on the next tick
            metrics.record_reaper_sweep(result='error')
            Logger.base.error(f'❌ [Hold Reaper] Sweep failed: {type(e).__name__}: {e}')

    async def _reap_loop(self) -> None:
        while True:
            await self.sweep_once()
            await anyio.sleep(self.interval_seconds)
