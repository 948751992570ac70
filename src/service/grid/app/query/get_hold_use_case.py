from typing import Callable, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.grid.domain.entity.hold_entity import Hold


class GetHoldUseCase:
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

    @Logger.io
    async def execute(self, *, hold_id: UUID) -> Hold:
        async with self.uow_factory(read_only=True) as uow:
            hold = await uow.hold_repo.get_by_id(hold_id=hold_id)

        if not hold:
            raise NotFoundError('Hold not found')

        return hold
