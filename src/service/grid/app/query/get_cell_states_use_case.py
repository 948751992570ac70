from typing import Callable, Dict, List, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.service.shared_kernel.domain.enum.cell_state import CellState
from src.service.shared_kernel.domain.value_object.grid_address import parse_cell_id


class GetCellStatesUseCase:
    def __init__(self, *, uow_factory: Callable[..., AbstractUnitOfWork]) -> None:
        self.uow_factory = uow_factory

    @classmethod
    @inject
    def depends(
        cls,
        uow_factory: Callable[..., AbstractUnitOfWork] = Depends(
            Provide[Container.unit_of_work.provider]
        ),
    ) -> Self:
        return cls(uow_factory=uow_factory)

    @Logger.io(truncate_content=True)
    async def execute(self, *, cell_ids: List[str]) -> Dict[str, CellState]:
        # Reject malformed / out-of-bounds ids before touching the store
        canonical = [parse_cell_id(cell_id).cell_id for cell_id in cell_ids]
        async with self.uow_factory(read_only=True) as uow:
            return await uow.cell_store.get_states(cell_ids=canonical)
