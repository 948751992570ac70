from abc import ABC, abstractmethod
from typing import List, Optional

from uuid_utils import UUID

from src.service.grid.domain.entity.submission_entity import Submission, SubmissionStatus


class ISubmissionRepo(ABC):
    @abstractmethod
    async def create(self, *, submission: Submission) -> Submission:
        """
        Insert a submission

        Note:
            payment_ref is unique; a duplicate surfaces as IntegrityError
            at flush/commit and is handled by the reconciler
        """
        pass

    @abstractmethod
    async def get_by_id(self, *, submission_id: UUID) -> Optional[Submission]:
        pass

    @abstractmethod
    async def get_by_payment_ref(self, *, payment_ref: str) -> Optional[Submission]:
        pass

    @abstractmethod
    async def get_by_checkout_session_id(self, *, checkout_session_id: str) -> Optional[Submission]:
        pass

    @abstractmethod
    async def transition(
        self, *, submission: Submission, from_status: SubmissionStatus
    ) -> bool:
        """
        Store the submission only if its row is still in from_status

        Returns False when another decision got there first; nothing is written then.
        """
        pass

    @abstractmethod
    async def list_by_status(self, *, statuses: List[SubmissionStatus]) -> List[Submission]:
        pass
