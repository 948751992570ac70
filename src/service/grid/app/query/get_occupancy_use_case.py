from typing import Callable, List, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.logging.loguru_io import Logger
from src.service.grid.app.dto.occupancy_dto import OccupancyRecord
from src.service.grid.domain.entity.submission_entity import SubmissionStatus


class GetOccupancyUseCase:
    """Derived occupancy view: every submission whose cells are still occupied"""

    OCCUPYING_STATUSES = [
        SubmissionStatus.AWAITING_UPLOAD,
        SubmissionStatus.UNDER_REVIEW,
        SubmissionStatus.APPROVED,
    ]

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
    async def execute(self) -> List[OccupancyRecord]:
        async with self.uow_factory(read_only=True) as uow:
            submissions = await uow.submission_repo.list_by_status(
                statuses=self.OCCUPYING_STATUSES
            )
        return [OccupancyRecord.from_submission(submission) for submission in submissions]
