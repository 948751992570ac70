"""Unit test doubles: a unit of work whose repositories are AsyncMocks."""

from typing import Any, Callable
from unittest.mock import AsyncMock

import pytest


class FakeUnitOfWork:
    def __init__(self) -> None:
        self.cell_store = AsyncMock()
        self.hold_repo = AsyncMock()
        self.submission_repo = AsyncMock()
        self.commit = AsyncMock()
        self.entered = 0

    async def __aenter__(self) -> 'FakeUnitOfWork':
        self.entered += 1
        return self

    async def __aexit__(self, *args: Any) -> None:
        return None


@pytest.fixture
def mock_uow() -> FakeUnitOfWork:
    return FakeUnitOfWork()


@pytest.fixture
def mock_uow_factory(mock_uow: FakeUnitOfWork) -> Callable[..., FakeUnitOfWork]:
    def _factory(**kwargs: Any) -> FakeUnitOfWork:
        return mock_uow

    return _factory


@pytest.fixture
def mock_grid_feed() -> AsyncMock:
    feed = AsyncMock()
    feed.publish = AsyncMock(return_value=[])
    return feed


@pytest.fixture
def mock_notification_sender() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def mock_refund_gateway() -> AsyncMock:
    return AsyncMock()
