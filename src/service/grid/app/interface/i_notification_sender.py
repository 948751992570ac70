from abc import ABC, abstractmethod

from src.service.grid.domain.entity.submission_entity import Submission


class INotificationSender(ABC):
    """Transactional email collaborator; failures are logged by callers, never raised to users"""

    @abstractmethod
    async def send_payment_confirmed(self, *, submission: Submission) -> None:
        pass

    @abstractmethod
    async def send_submission_approved(self, *, submission: Submission) -> None:
        pass

    @abstractmethod
    async def send_submission_rejected(self, *, submission: Submission) -> None:
        pass

    @abstractmethod
    async def send_submission_removed(self, *, submission: Submission) -> None:
        pass
