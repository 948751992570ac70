from typing import Callable, Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from uuid_utils import UUID

from src.platform.config.di import Container
from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.exception.exceptions import ForbiddenError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.service.grid.domain.entity.submission_entity import Submission


class GetSubmissionUseCase:
    """
    Purchaser's view of a submission

    Looked up by id, or by the checkout session id the payment page returns to
    (after payment the hold is gone and the session is all the buyer has).
    Both require the purchaser's contact.
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
    async def execute(self, *, submission_id: UUID, contact: Optional[str]) -> Submission:
        async with self.uow_factory(read_only=True) as uow:
            submission = await uow.submission_repo.get_by_id(submission_id=submission_id)
        return self._owned(submission, contact=contact)

    @Logger.io
    async def execute_by_session(
        self, *, checkout_session_id: str, contact: Optional[str]
    ) -> Submission:
        async with self.uow_factory(read_only=True) as uow:
            submission = await uow.submission_repo.get_by_checkout_session_id(
                checkout_session_id=checkout_session_id
            )
        return self._owned(submission, contact=contact)

    @staticmethod
    def _owned(submission: Optional[Submission], *, contact: Optional[str]) -> Submission:
        if not submission:
            raise NotFoundError('Submission not found')
        if not contact or not submission.is_owned_by(contact):
            raise ForbiddenError('Only the purchaser can view this submission')
        return submission
