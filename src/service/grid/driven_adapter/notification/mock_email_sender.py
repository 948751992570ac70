"""Mock email sender: logs instead of delivering and keeps what was sent for inspection."""

from datetime import datetime, timezone
from typing import List

from src.platform.logging.loguru_io import Logger
from src.service.grid.app.interface.i_notification_sender import INotificationSender
from src.service.grid.domain.entity.submission_entity import Submission


class MockEmailSender(INotificationSender):
    def __init__(self) -> None:
        self.sent_emails: List[dict] = []

    async def send_email(self, *, to: str, subject: str, body: str) -> bool:
        email_data = {
            'to': to,
            'subject': subject,
            'body': body,
            'sent_at': datetime.now(timezone.utc),
        }
        self.sent_emails.append(email_data)
        Logger.base.info(f'📧 [MOCK_EMAIL] To: {to} | Subject: {subject}')
        return True

    @staticmethod
    def _describe(submission: Submission) -> str:
        rect = submission.rectangle
        return (
            f'Submission: {submission.id}\n'
            f'Cells: {rect.top_left.cell_id} to {rect.bottom_right.cell_id} '
            f'({submission.cell_count} cells)\n'
            f'Amount: ${submission.amount / 100:,.2f} {submission.currency.upper()}'
        )

    @Logger.io
    async def send_payment_confirmed(self, *, submission: Submission) -> None:
        body = (
            'Your payment was received and your cells are reserved.\n\n'
            f'{self._describe(submission)}\n\n'
            'Upload your video to submit it for review.'
        )
        await self.send_email(
            to=submission.contact, subject='Payment Confirmed - Your cells are reserved', body=body
        )

    @Logger.io
    async def send_submission_approved(self, *, submission: Submission) -> None:
        body = f'Your video is now live on the grid.\n\n{self._describe(submission)}'
        await self.send_email(to=submission.contact, subject='Submission Approved', body=body)

    @Logger.io
    async def send_submission_rejected(self, *, submission: Submission) -> None:
        body = (
            'Your submission was not approved and your payment is being refunded.\n\n'
            f'{self._describe(submission)}'
        )
        if submission.admin_notes:
            body += f'\nReason: {submission.admin_notes}'
        await self.send_email(to=submission.contact, subject='Submission Rejected', body=body)

    @Logger.io
    async def send_submission_removed(self, *, submission: Submission) -> None:
        body = f'Your video has been removed from the grid.\n\n{self._describe(submission)}'
        if submission.admin_notes:
            body += f'\nReason: {submission.admin_notes}'
        await self.send_email(to=submission.contact, subject='Submission Removed', body=body)
