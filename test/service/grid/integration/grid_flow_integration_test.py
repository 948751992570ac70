"""
Integration tests for the hold → payment → moderation lifecycle

Real use cases, real sqlite database, in-process feed, mock external collaborators.

Lifecycle:
    free ──claim──▶ held ──payment──▶ occupied ──reject/remove──▶ free
                     │
                     └──cancel / expiry──▶ free
"""

from datetime import datetime, timedelta, timezone
import functools
from typing import Callable, List

import anyio
import pytest

from src.platform.database.unit_of_work import AbstractUnitOfWork
from src.platform.event.in_memory_broadcaster import InMemoryEventBroadcasterImpl
from src.service.grid.app.command.attach_content_use_case import AttachContentUseCase
from src.service.grid.app.command.cancel_hold_use_case import CancelHoldUseCase
from src.service.grid.app.command.confirm_payment_use_case import ConfirmPaymentUseCase
from src.service.grid.app.command.create_hold_use_case import CreateHoldUseCase
from src.service.grid.app.command.moderate_submission_use_case import ModerateSubmissionUseCase
from src.service.grid.app.command.reap_expired_holds_use_case import ReapExpiredHoldsUseCase
from src.service.grid.app.command.start_checkout_use_case import StartCheckoutUseCase
from src.service.grid.app.dto.checkout_dto import PaymentConfirmation
from src.service.grid.app.query.get_occupancy_use_case import GetOccupancyUseCase
from src.service.grid.app.query.stream_grid_state_use_case import StreamGridStateUseCase
from src.service.grid.domain.entity.hold_entity import Hold
from src.service.grid.domain.entity.submission_entity import (
    ContentRef,
    Submission,
    SubmissionStatus,
)
from src.service.grid.domain.enum.feed_event_type import FeedEventType
from src.service.grid.driven_adapter.feed.grid_feed_impl import GridFeedImpl
from src.service.grid.driven_adapter.notification.mock_email_sender import MockEmailSender
from src.service.grid.driven_adapter.payment.mock_payment_gateway import (
    MockPaymentGateway,
    MockRefundGateway,
)
from src.service.shared_kernel.domain.enum.cell_state import CellState
from src.service.shared_kernel.domain.grid_error import SlotUnavailableError
from src.service.shared_kernel.domain.value_object.grid_address import CellPosition, Rectangle
from src.service.viewport.domain.cell_snapshot import CellSnapshot


BUYER = 'buyer@mail.com'


class _SlowFreeFeed(GridFeedImpl):
    """Feed that yields before publishing freed cells, widening any publish race"""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.publishing_free = anyio.Event()

    async def publish(self, *, changes):
        if changes and all(state == CellState.FREE for _, state in changes):
            self.publishing_free.set()
            await anyio.sleep(0.05)
        return await super().publish(changes=changes)


def _rect(top: int, left: int, bottom: int, right: int) -> Rectangle:
    return Rectangle(
        top_left=CellPosition(row=top, col=left),
        bottom_right=CellPosition(row=bottom, col=right),
    )


@pytest.fixture
def create_hold(
    uow_factory: Callable[..., AbstractUnitOfWork], grid_feed: GridFeedImpl
) -> CreateHoldUseCase:
    return CreateHoldUseCase(uow_factory=uow_factory, grid_feed=grid_feed)


@pytest.fixture
def confirm_payment(
    uow_factory: Callable[..., AbstractUnitOfWork],
    grid_feed: GridFeedImpl,
    email_sender: MockEmailSender,
    refund_gateway: MockRefundGateway,
) -> ConfirmPaymentUseCase:
    return ConfirmPaymentUseCase(
        uow_factory=uow_factory,
        grid_feed=grid_feed,
        notification_sender=email_sender,
        refund_gateway=refund_gateway,
    )


@pytest.fixture
def start_checkout(
    uow_factory: Callable[..., AbstractUnitOfWork],
    payment_gateway: MockPaymentGateway,
    confirm_payment: ConfirmPaymentUseCase,
) -> StartCheckoutUseCase:
    return StartCheckoutUseCase(
        uow_factory=uow_factory,
        payment_gateway=payment_gateway,
        confirm_payment_use_case=confirm_payment,
    )


@pytest.fixture
def reap(
    uow_factory: Callable[..., AbstractUnitOfWork], grid_feed: GridFeedImpl
) -> ReapExpiredHoldsUseCase:
    return ReapExpiredHoldsUseCase(uow_factory=uow_factory, grid_feed=grid_feed)


@pytest.fixture
def moderate(
    uow_factory: Callable[..., AbstractUnitOfWork],
    grid_feed: GridFeedImpl,
    email_sender: MockEmailSender,
    refund_gateway: MockRefundGateway,
) -> ModerateSubmissionUseCase:
    return ModerateSubmissionUseCase(
        uow_factory=uow_factory,
        grid_feed=grid_feed,
        notification_sender=email_sender,
        refund_gateway=refund_gateway,
    )


async def _states(uow_factory: Callable[..., AbstractUnitOfWork], cell_ids: List[str]) -> dict:
    async with uow_factory(read_only=True) as uow:
        return await uow.cell_store.get_states(cell_ids=cell_ids)


async def _pay(
    start_checkout: StartCheckoutUseCase, confirm_payment: ConfirmPaymentUseCase, hold: Hold
) -> Submission:
    checkout = await start_checkout.execute(hold_id=hold.id, contact=BUYER)
    submission = await confirm_payment.execute(
        confirmation=PaymentConfirmation(
            checkout_session_id=checkout.session_id, payment_ref=f'pi_{hold.id.hex}'
        )
    )
    assert submission is not None
    return submission


class TestHoldLifecycle:
    @pytest.mark.asyncio
    async def test_claim_on_empty_grid_holds_exactly_the_rectangle(
        self,
        create_hold: CreateHoldUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
        grid_feed: GridFeedImpl,
    ) -> None:
        hold = await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)

        assert hold.cell_ids == ['0-0', '0-1', '1-0', '1-1']
        states = await _states(uow_factory, hold.cell_ids + ['2-2'])
        assert [states[c] for c in hold.cell_ids] == [CellState.HELD] * 4
        assert states['2-2'] == CellState.FREE
        assert grid_feed.current_seq == 4

    @pytest.mark.asyncio
    async def test_overlapping_claim_fails_naming_the_shared_cell(
        self, create_hold: CreateHoldUseCase, grid_feed: GridFeedImpl
    ) -> None:
        await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)

        with pytest.raises(SlotUnavailableError) as exc_info:
            await create_hold.execute(rectangle=_rect(1, 1, 2, 2), contact='other@mail.com')

        assert exc_info.value.blocking_cell_ids == ['1-1']
        assert grid_feed.current_seq == 4

    @pytest.mark.asyncio
    async def test_concurrent_overlapping_claims_have_exactly_one_winner(
        self, create_hold: CreateHoldUseCase, uow_factory: Callable[..., AbstractUnitOfWork]
    ) -> None:
        """
        Given: ten buyers racing for rectangles that all share cell 10-10
        When: they claim at the same time
        Then: exactly one hold succeeds and only its cells are held
        """
        won: List[Hold] = []
        lost: List[SlotUnavailableError] = []

        async def attempt(offset: int) -> None:
            try:
                won.append(
                    await create_hold.execute(
                        rectangle=_rect(10, 10 - offset, 10, 10), contact=f'b{offset}@mail.com'
                    )
                )
            except SlotUnavailableError as e:
                lost.append(e)

        async with anyio.create_task_group() as tg:
            for offset in range(10):
                tg.start_soon(attempt, offset)

        assert len(won) == 1
        assert len(lost) == 9
        assert all('10-10' in e.blocking_cell_ids for e in lost)

        row = [f'10-{col}' for col in range(11)]
        states = await _states(uow_factory, row)
        held = sorted(cell_id for cell_id, state in states.items() if state == CellState.HELD)
        assert held == sorted(won[0].cell_ids)

    @pytest.mark.asyncio
    async def test_cancel_frees_cells_and_is_idempotent(
        self,
        create_hold: CreateHoldUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
        grid_feed: GridFeedImpl,
    ) -> None:
        hold = await create_hold.execute(rectangle=_rect(0, 0, 0, 2), contact=BUYER)
        cancel = CancelHoldUseCase(uow_factory=uow_factory, grid_feed=grid_feed)

        assert await cancel.execute(hold_id=hold.id, contact=BUYER) == 3
        assert await cancel.execute(hold_id=hold.id, contact=BUYER) == 0

        states = await _states(uow_factory, hold.cell_ids)
        assert set(states.values()) == {CellState.FREE}
        # the freed cells can be claimed again
        await create_hold.execute(rectangle=_rect(0, 0, 0, 2), contact='other@mail.com')


class TestExpiry:
    @pytest.mark.asyncio
    async def test_reap_after_ttl_frees_all_cells(
        self,
        create_hold: CreateHoldUseCase,
        reap: ReapExpiredHoldsUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
        grid_feed: GridFeedImpl,
    ) -> None:
        """
        Given: a 15-minute hold on (0,0)-(1,1), never paid
        When: the reaper runs 16 minutes later
        Then: all 4 cells are free again, and a second sweep finds nothing
        """
        hold = await create_hold.execute(
            rectangle=_rect(0, 0, 1, 1), contact=BUYER, ttl=timedelta(minutes=15)
        )
        later = hold.created_at + timedelta(minutes=16)

        result = await reap.execute(now=later)

        assert result.holds_reaped == 1
        assert result.cells_freed == 4
        states = await _states(uow_factory, hold.cell_ids)
        assert set(states.values()) == {CellState.FREE}
        assert [d.state for d in grid_feed.changes_since(since=4).deltas] == [CellState.FREE] * 4

        again = await reap.execute(now=later)
        assert again.holds_reaped == 0
        assert again.total_cells_freed == 0

    @pytest.mark.asyncio
    async def test_live_holds_are_not_reaped(
        self,
        create_hold: CreateHoldUseCase,
        reap: ReapExpiredHoldsUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
    ) -> None:
        hold = await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)

        result = await reap.execute(now=hold.created_at + timedelta(minutes=14))

        assert result.holds_reaped == 0
        assert set((await _states(uow_factory, hold.cell_ids)).values()) == {CellState.HELD}

    @pytest.mark.asyncio
    async def test_reaping_in_small_batches(
        self,
        create_hold: CreateHoldUseCase,
        reap: ReapExpiredHoldsUseCase,
    ) -> None:
        for row in range(5):
            await create_hold.execute(rectangle=_rect(row, 0, row, 1), contact=BUYER)

        result = await reap.execute(
            now=datetime.now(timezone.utc) + timedelta(hours=1), batch_size=2
        )

        assert result.holds_reaped == 5
        assert result.cells_freed == 10

    @pytest.mark.asyncio
    async def test_payment_for_a_reaped_hold_is_ignored(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        confirm_payment: ConfirmPaymentUseCase,
        reap: ReapExpiredHoldsUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
    ) -> None:
        hold = await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)
        checkout = await start_checkout.execute(hold_id=hold.id, contact=BUYER)
        await reap.execute(now=hold.created_at + timedelta(minutes=16))

        submission = await confirm_payment.execute(
            confirmation=PaymentConfirmation(
                checkout_session_id=checkout.session_id, payment_ref='pi_late'
            )
        )

        assert submission is None
        assert set((await _states(uow_factory, hold.cell_ids)).values()) == {CellState.FREE}

    @pytest.mark.asyncio
    async def test_feed_agrees_with_store_when_a_claim_follows_the_reaper(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        broadcaster: InMemoryEventBroadcasterImpl,
    ) -> None:
        """
        Given: an expired hold on (0,0)-(0,1)
        When: a new buyer claims the same cells while the reaper is publishing
        Then: replaying the feed ends with the cells held, as in the store
        """
        feed = _SlowFreeFeed(broadcaster=broadcaster, replay_buffer_size=1000)
        create = CreateHoldUseCase(uow_factory=uow_factory, grid_feed=feed)
        reaper = ReapExpiredHoldsUseCase(uow_factory=uow_factory, grid_feed=feed)
        hold = await create.execute(
            rectangle=_rect(0, 0, 0, 1), contact=BUYER, ttl=timedelta(minutes=15)
        )

        async with anyio.create_task_group() as tg:
            tg.start_soon(
                functools.partial(reaper.execute, now=hold.created_at + timedelta(minutes=16))
            )
            await feed.publishing_free.wait()
            tg.start_soon(
                functools.partial(
                    create.execute, rectangle=_rect(0, 0, 0, 1), contact='next@mail.com'
                )
            )

        mirror = CellSnapshot()
        mirror.apply_deltas(delta.to_dict() for delta in feed.changes_since(since=0).deltas)
        store = await _states(uow_factory, hold.cell_ids)
        assert store == {'0-0': CellState.HELD, '0-1': CellState.HELD}
        assert {c: mirror.state_of(c) for c in hold.cell_ids} == store


class TestPaymentReconciliation:
    @pytest.mark.asyncio
    async def test_payment_converts_hold_into_submission(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        confirm_payment: ConfirmPaymentUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
        email_sender: MockEmailSender,
    ) -> None:
        """
        Given: Scenario A's hold with a started checkout
        When: the payment is confirmed
        Then: one submission, all 4 cells occupied, hold record deleted
        """
        hold = await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)

        submission = await _pay(start_checkout, confirm_payment, hold)

        assert submission.status == SubmissionStatus.AWAITING_UPLOAD
        assert submission.amount == 800
        assert submission.cell_ids == hold.cell_ids
        assert set((await _states(uow_factory, hold.cell_ids)).values()) == {CellState.OCCUPIED}
        async with uow_factory(read_only=True) as uow:
            assert await uow.hold_repo.get_by_id(hold_id=hold.id) is None
            stored = await uow.submission_repo.get_by_id(submission_id=submission.id)
        assert stored is not None and stored.payment_ref == submission.payment_ref
        assert [e['subject'] for e in email_sender.sent_emails] == [
            'Payment Confirmed - Your cells are reserved'
        ]

    @pytest.mark.asyncio
    async def test_duplicate_confirmation_creates_one_submission(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        confirm_payment: ConfirmPaymentUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
    ) -> None:
        hold = await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)
        checkout = await start_checkout.execute(hold_id=hold.id, contact=BUYER)
        confirmation = PaymentConfirmation(
            checkout_session_id=checkout.session_id, payment_ref='pi_dup'
        )
        results: List[Submission] = []

        async def deliver() -> None:
            results.append(await confirm_payment.execute(confirmation=confirmation))

        async with anyio.create_task_group() as tg:
            tg.start_soon(deliver)
            tg.start_soon(deliver)
        results.append(await confirm_payment.execute(confirmation=confirmation))

        assert len({submission.id for submission in results}) == 1
        async with uow_factory(read_only=True) as uow:
            occupying = await uow.submission_repo.list_by_status(
                statuses=[SubmissionStatus.AWAITING_UPLOAD]
            )
        assert len(occupying) == 1

    @pytest.mark.asyncio
    async def test_payment_in_the_first_session_converts_after_a_repeated_checkout(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        confirm_payment: ConfirmPaymentUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
        refund_gateway: MockRefundGateway,
    ) -> None:
        """
        Given: a hold whose buyer opened checkout twice
        When: the payment arrives for the first session
        Then: the hold converts; nothing is refunded
        """
        hold = await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)
        first = await start_checkout.execute(hold_id=hold.id, contact=BUYER)
        second = await start_checkout.execute(hold_id=hold.id, contact=BUYER)

        submission = await confirm_payment.execute(
            confirmation=PaymentConfirmation(
                checkout_session_id=first.session_id, payment_ref='pi_first'
            )
        )

        assert second.session_id == first.session_id
        assert second.checkout_url == first.checkout_url
        assert submission is not None
        assert submission.checkout_session_id == first.session_id
        assert set((await _states(uow_factory, hold.cell_ids)).values()) == {CellState.OCCUPIED}
        assert refund_gateway.refunds == []

    @pytest.mark.asyncio
    async def test_hold_that_lost_its_cells_is_refunded(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        confirm_payment: ConfirmPaymentUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
        refund_gateway: MockRefundGateway,
    ) -> None:
        """
        Given: a hold record still present but its cells already released
        When: its payment is confirmed
        Then: no submission, the payment is refunded, nothing is occupied
        """
        hold = await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)
        checkout = await start_checkout.execute(hold_id=hold.id, contact=BUYER)
        async with uow_factory() as uow:
            await uow.cell_store.release(cell_ids=hold.cell_ids, hold_id=hold.id)
            await uow.commit()

        submission = await confirm_payment.execute(
            confirmation=PaymentConfirmation(
                checkout_session_id=checkout.session_id, payment_ref='pi_orphan'
            )
        )

        assert submission is None
        assert refund_gateway.refunds == [
            {'payment_ref': 'pi_orphan', 'amount': 800, 'currency': 'usd'}
        ]
        async with uow_factory(read_only=True) as uow:
            assert await uow.submission_repo.get_by_payment_ref(payment_ref='pi_orphan') is None

    @pytest.mark.asyncio
    async def test_promo_code_converts_without_payment(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
    ) -> None:
        hold = await create_hold.execute(rectangle=_rect(3, 3, 3, 4), contact=BUYER)

        result = await start_checkout.execute(
            hold_id=hold.id, contact=BUYER, promo_code='GRIDFREE'
        )

        assert result.free
        assert result.amount == 0
        assert result.submission_id is not None
        assert set((await _states(uow_factory, hold.cell_ids)).values()) == {CellState.OCCUPIED}


class TestModeration:
    @pytest.mark.asyncio
    async def test_reject_frees_cells_and_refunds(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        confirm_payment: ConfirmPaymentUseCase,
        moderate: ModerateSubmissionUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
        refund_gateway: MockRefundGateway,
    ) -> None:
        hold = await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)
        submission = await _pay(start_checkout, confirm_payment, hold)

        rejected = await moderate.reject(submission_id=submission.id, notes='off-topic')

        assert rejected.status == SubmissionStatus.REJECTED
        assert set((await _states(uow_factory, hold.cell_ids)).values()) == {CellState.FREE}
        assert refund_gateway.refunds == [
            {'payment_ref': submission.payment_ref, 'amount': 800, 'currency': 'usd'}
        ]
        # freed cells are claimable again
        await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact='next@mail.com')

    @pytest.mark.asyncio
    async def test_concurrent_rejects_refund_once(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        confirm_payment: ConfirmPaymentUseCase,
        moderate: ModerateSubmissionUseCase,
        refund_gateway: MockRefundGateway,
        email_sender: MockEmailSender,
    ) -> None:
        hold = await create_hold.execute(rectangle=_rect(0, 0, 1, 1), contact=BUYER)
        submission = await _pay(start_checkout, confirm_payment, hold)
        emails_before = len(email_sender.sent_emails)

        async with anyio.create_task_group() as tg:
            for _ in range(3):
                tg.start_soon(functools.partial(moderate.reject, submission_id=submission.id))

        assert len(refund_gateway.refunds) == 1
        assert len(email_sender.sent_emails) == emails_before + 1

    @pytest.mark.asyncio
    async def test_status_write_from_a_stale_status_changes_nothing(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        confirm_payment: ConfirmPaymentUseCase,
        moderate: ModerateSubmissionUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
    ) -> None:
        """
        Given: a submission read while awaiting upload, then removed by an admin
        When: a rejection is written on the strength of the old read
        Then: the write matches no row and the submission stays removed
        """
        hold = await create_hold.execute(rectangle=_rect(0, 0, 0, 0), contact=BUYER)
        stale = await _pay(start_checkout, confirm_payment, hold)
        await moderate.remove(submission_id=stale.id)

        async with uow_factory() as uow:
            written = await uow.submission_repo.transition(
                submission=stale.reject(notes='late'), from_status=stale.status
            )
            await uow.commit()

        assert written is False
        async with uow_factory(read_only=True) as uow:
            stored = await uow.submission_repo.get_by_id(submission_id=stale.id)
        assert stored is not None
        assert stored.status == SubmissionStatus.REMOVED
        assert stored.admin_notes is None

    @pytest.mark.asyncio
    async def test_approved_submission_stays_in_occupancy_until_removed(
        self,
        create_hold: CreateHoldUseCase,
        start_checkout: StartCheckoutUseCase,
        confirm_payment: ConfirmPaymentUseCase,
        moderate: ModerateSubmissionUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
    ) -> None:
        hold = await create_hold.execute(rectangle=_rect(0, 0, 0, 0), contact=BUYER)
        submission = await _pay(start_checkout, confirm_payment, hold)
        await AttachContentUseCase(uow_factory=uow_factory).execute(
            submission_id=submission.id,
            contact=BUYER,
            content=ContentRef(video_url='https://cdn.test/v.mp4', duration_seconds=10),
        )
        occupancy = GetOccupancyUseCase(uow_factory=uow_factory)

        await moderate.approve(submission_id=submission.id)
        records = await occupancy.execute()
        assert [(r.submission_id, r.status) for r in records] == [
            (submission.id, SubmissionStatus.APPROVED)
        ]

        await moderate.remove(submission_id=submission.id)
        assert await occupancy.execute() == []
        assert (await _states(uow_factory, ['0-0']))['0-0'] == CellState.FREE


class TestStateFeed:
    @pytest.mark.asyncio
    async def test_snapshot_then_ordered_deltas(
        self,
        create_hold: CreateHoldUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
        grid_feed: GridFeedImpl,
    ) -> None:
        await create_hold.execute(rectangle=_rect(0, 0, 0, 0), contact=BUYER)
        use_case = StreamGridStateUseCase(uow_factory=uow_factory, grid_feed=grid_feed)
        events = use_case.stream()

        try:
            with anyio.fail_after(5):
                snapshot = await events.__anext__()
                await create_hold.execute(rectangle=_rect(5, 5, 5, 6), contact=BUYER)
                first = await events.__anext__()
                second = await events.__anext__()
        finally:
            await events.aclose()

        assert snapshot['event_type'] == FeedEventType.SNAPSHOT
        assert snapshot['seq'] == 1
        assert snapshot['cells'] == {'0-0': 'held'}
        assert (first['event_type'], first['seq'], first['cell_id']) == (
            FeedEventType.CELL_CHANGED,
            2,
            '5-5',
        )
        assert (second['seq'], second['cell_id'], second['state']) == (3, '5-6', 'held')

    @pytest.mark.asyncio
    async def test_snapshot_plus_changes_matches_store(
        self,
        create_hold: CreateHoldUseCase,
        uow_factory: Callable[..., AbstractUnitOfWork],
        grid_feed: GridFeedImpl,
    ) -> None:
        use_case = StreamGridStateUseCase(uow_factory=uow_factory, grid_feed=grid_feed)
        await create_hold.execute(rectangle=_rect(0, 0, 0, 1), contact=BUYER)
        snapshot = await use_case.snapshot()
        hold = await create_hold.execute(rectangle=_rect(1, 0, 1, 0), contact=BUYER)
        await CancelHoldUseCase(uow_factory=uow_factory, grid_feed=grid_feed).execute(
            hold_id=hold.id
        )

        cells = {cell_id: state.value for cell_id, state in snapshot.cells.items()}
        for delta in use_case.changes_since(since=snapshot.seq).deltas:
            if delta.state == CellState.FREE:
                cells.pop(delta.cell_id, None)
            else:
                cells[delta.cell_id] = delta.state.value

        current = await use_case.snapshot()
        assert cells == {cell_id: state.value for cell_id, state in current.cells.items()}
