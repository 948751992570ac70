from typing import Callable, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
)
from src.platform.logging.loguru_io import Logger
from src.service.grid.domain.entity.submission_entity import ContentRef, Submission


class AttachContentUseCase:
    """
    Hand-off from the content storage collaborator: record the durable video
    reference on a paid submission and queue it for review.
    """

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
    async def execute(
        self, *, submission_id: UUID, contact: str, content: ContentRef
    ) -> Submission:
        async with self.uow_factory() as uow:
            submission = await uow.submission_repo.get_by_id(submission_id=submission_id)
            if not submission:
                raise NotFoundError('Submission not found')
            if not submission.is_owned_by(contact):
                raise ForbiddenError('Only the purchaser can upload content for this submission')

            updated = submission.attach_content(content)
            if not await uow.submission_repo.transition(
                submission=updated, from_status=submission.status
            ):
                raise ConflictError('Submission was moderated while the upload was recorded')
            await uow.commit()

        Logger.base.info(
            f'🎬 [CONTENT] Submission {submission_id} under review '
            f'({content.duration_seconds:.1f}s video)'
        )
        return updated
