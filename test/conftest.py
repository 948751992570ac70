"""
Test Configuration and Fixtures

This module provides:
- Isolated SQLite databases (aiosqlite) instead of PostgreSQL
- Per-test units of work and state feeds for integration tests
- A session-scoped TestClient for API tests, with table cleanup per test

Architecture:
- Unit tests (@pytest.mark.unit): mocks only, no database
- Integration tests: real SQLite database, real repositories, in-process feed
- API tests: use the `client` fixture; tables are emptied before each test
"""

# =============================================================================
# CRITICAL: Environment setup MUST happen before any other imports
# Settings are read at import time (src.platform.config.core_setting.settings)
# =============================================================================
import os
from pathlib import Path
import tempfile


def _early_setup_test_environment() -> None:
    """Set test environment variables before any module imports."""
    worker_id = os.environ.get('PYTEST_XDIST_WORKER', 'master')
    test_db_dir = Path(tempfile.mkdtemp(prefix=f'grid_test_{worker_id}_'))
    os.environ['TEST_DB_DIR'] = str(test_db_dir)
    os.environ['DATABASE_URL'] = f'sqlite+aiosqlite:///{test_db_dir / "grid_api.db"}'

    # Create test log directory
    test_log_dir = Path(__file__).parent / 'test_log'
    test_log_dir.mkdir(exist_ok=True)
    os.environ['TEST_LOG_DIR'] = str(test_log_dir)

    # Deterministic collaborators and secrets
    os.environ['HOLD_REAPER_ENABLED'] = 'false'
    os.environ['HOLD_TTL_MINUTES'] = '15'
    os.environ['PRICE_PER_CELL_CENTS'] = '200'
    os.environ['CURRENCY'] = 'usd'
    os.environ['PROMO_CODE_FREE'] = 'GRIDFREE'
    os.environ['PAYMENT_WEBHOOK_SECRET'] = 'test_webhook_secret'
    os.environ['SECRET_KEY'] = 'test_secret_key'


# Call immediately to set env vars before any imports
_early_setup_test_environment()

from collections.abc import AsyncGenerator, Callable, Generator  # noqa: E402
import functools  # noqa: E402
from typing import Any  # noqa: E402

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine, text  # noqa: E402

from src.platform.database.orm_db_setting import Database  # noqa: E402
from src.platform.database.unit_of_work import (  # noqa: E402
    AbstractUnitOfWork,
    SqlAlchemyUnitOfWork,
)
from src.platform.event.in_memory_broadcaster import InMemoryEventBroadcasterImpl  # noqa: E402
from src.service.grid.driven_adapter.feed.grid_feed_impl import GridFeedImpl  # noqa: E402
from src.service.grid.driven_adapter.notification.mock_email_sender import (  # noqa: E402
    MockEmailSender,
)
from src.service.grid.driven_adapter.payment.mock_payment_gateway import (  # noqa: E402
    MockPaymentGateway,
    MockRefundGateway,
)


GRID_TABLES = ('grid_cell', 'grid_hold', 'grid_submission')


# =============================================================================
# Pytest Hooks
# =============================================================================
def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if 'client' in item.fixturenames:
            item.fixturenames.append('clean_database')


# =============================================================================
# Integration Test Fixtures (one fresh database file per test)
# =============================================================================
@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    db = Database(url=f'sqlite+aiosqlite:///{tmp_path / "grid.db"}')
    await db.create_tables()
    yield db
    await db.dispose()


@pytest.fixture
def uow_factory(database: Database) -> Callable[..., AbstractUnitOfWork]:
    return functools.partial(SqlAlchemyUnitOfWork, database)


@pytest.fixture
def broadcaster() -> InMemoryEventBroadcasterImpl:
    return InMemoryEventBroadcasterImpl(max_buffer_size=64)


@pytest.fixture
def grid_feed(broadcaster: InMemoryEventBroadcasterImpl) -> GridFeedImpl:
    return GridFeedImpl(broadcaster=broadcaster, replay_buffer_size=1000)


@pytest.fixture
def email_sender() -> MockEmailSender:
    return MockEmailSender()


@pytest.fixture
def payment_gateway() -> MockPaymentGateway:
    return MockPaymentGateway(base_url='https://checkout.test')


@pytest.fixture
def refund_gateway() -> MockRefundGateway:
    return MockRefundGateway()


# =============================================================================
# API Test Fixtures
# =============================================================================
def _api_database_path() -> str:
    return os.environ['DATABASE_URL'].replace('sqlite+aiosqlite:///', '')


@pytest.fixture(scope='session')
def client() -> Generator[TestClient, None, None]:
    from test.test_main import app

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def clean_database() -> Generator[None, None, None]:
    """Empty the API database; the app's own engine keeps running"""
    engine = create_engine(f'sqlite:///{_api_database_path()}')
    try:
        with engine.begin() as conn:
            for table in GRID_TABLES:
                conn.execute(text(f'DELETE FROM {table}'))
    finally:
        engine.dispose()
    yield


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    from src.platform.config.di import container

    token = container.admin_jwt_auth().create_admin_token(subject='moderator@mail.com')
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def webhook_headers() -> dict[str, str]:
    return {'X-Webhook-Secret': 'test_webhook_secret'}


@pytest.fixture
def api_container(client: TestClient) -> Any:
    """DI container of the running test app (mock collaborators are singletons)"""
    from src.platform.config.di import container

    return container
