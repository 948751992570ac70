"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.database.orm_db_setting import Database
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.platform.event.in_memory_broadcaster import InMemoryEventBroadcasterImpl
from src.service.grid.app.command.confirm_payment_use_case import ConfirmPaymentUseCase
from src.service.grid.app.command.reap_expired_holds_use_case import ReapExpiredHoldsUseCase
from src.service.grid.driven_adapter.feed.grid_feed_impl import GridFeedImpl
from src.service.grid.driven_adapter.notification.mock_email_sender import MockEmailSender
from src.service.grid.driven_adapter.payment.mock_payment_gateway import (
    MockPaymentGateway,
    MockRefundGateway,
)
from src.service.grid.driving_adapter.http_controller.auth.admin_jwt_auth import AdminJwtAuth


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database (uses AsyncEngineManager with settings from config_service)
    database = providers.Singleton(Database)

    # One transaction per unit of work; use cases receive the provider as a factory
    unit_of_work = providers.Factory(SqlAlchemyUnitOfWork, database=database)

    # In-process pub/sub for the state feed (SSE fan-out)
    event_broadcaster = providers.Singleton(
        InMemoryEventBroadcasterImpl,
        max_buffer_size=config_service.provided.FEED_SUBSCRIBER_BUFFER_SIZE,
    )
    grid_feed = providers.Singleton(
        GridFeedImpl,
        broadcaster=event_broadcaster,
        replay_buffer_size=config_service.provided.FEED_REPLAY_BUFFER_SIZE,
    )

    # External collaborators (mock implementations)
    payment_gateway = providers.Singleton(MockPaymentGateway)
    refund_gateway = providers.Singleton(MockRefundGateway)
    notification_sender = providers.Singleton(MockEmailSender)

    # Auth service
    admin_jwt_auth = providers.Singleton(AdminJwtAuth)

    # Use cases shared by HTTP handlers and background tasks
    confirm_payment_use_case = providers.Factory(
        ConfirmPaymentUseCase,
        uow_factory=unit_of_work.provider,
        grid_feed=grid_feed,
        notification_sender=notification_sender,
        refund_gateway=refund_gateway,
    )
    reap_expired_holds_use_case = providers.Factory(
        ReapExpiredHoldsUseCase,
        uow_factory=unit_of_work.provider,
        grid_feed=grid_feed,
        batch_size=config_service.provided.HOLD_REAPER_BATCH_SIZE,
    )


container = Container()


def setup() -> None:
    container.config_service()
    container.grid_feed()


async def cleanup() -> None:
    await container.database().dispose()
    container.reset_singletons()
