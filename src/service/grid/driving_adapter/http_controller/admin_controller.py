from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, status
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.platform.types.uuid7_utils_types import UtilsUUID7
from src.service.grid.app.command.moderate_submission_use_case import ModerateSubmissionUseCase
from src.service.grid.app.command.reap_expired_holds_use_case import ReapExpiredHoldsUseCase
from src.service.grid.driving_adapter.http_controller.auth.role_auth import require_admin
from src.service.grid.driving_adapter.http_controller.schema.submission_schema import (
    ModerationRequest,
    ReapResponse,
    SubmissionResponse,
)
from src.service.grid.driving_adapter.http_controller.submission_controller import (
    submission_response,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


@inject
def get_reap_expired_holds_use_case(
    use_case: ReapExpiredHoldsUseCase = Depends(Provide[Container.reap_expired_holds_use_case]),
) -> ReapExpiredHoldsUseCase:
    return use_case


@router.post('/submission/{submission_id}/approve', status_code=status.HTTP_200_OK)
@Logger.io
async def approve_submission(
    submission_id: UtilsUUID7,
    request: ModerationRequest,
    admin: str = Depends(require_admin),
    use_case: ModerateSubmissionUseCase = Depends(ModerateSubmissionUseCase.depends),
) -> SubmissionResponse:
    with tracer.start_as_current_span('controller.approve_submission') as span:
        span.set_attribute('admin', admin)
        submission = await use_case.approve(submission_id=submission_id, notes=request.notes)
        return submission_response(submission)


@router.post('/submission/{submission_id}/reject', status_code=status.HTTP_200_OK)
@Logger.io
async def reject_submission(
    submission_id: UtilsUUID7,
    request: ModerationRequest,
    admin: str = Depends(require_admin),
    use_case: ModerateSubmissionUseCase = Depends(ModerateSubmissionUseCase.depends),
) -> SubmissionResponse:
    with tracer.start_as_current_span('controller.reject_submission') as span:
        span.set_attribute('admin', admin)
        submission = await use_case.reject(submission_id=submission_id, notes=request.notes)
        return submission_response(submission)


@router.post('/submission/{submission_id}/remove', status_code=status.HTTP_200_OK)
@Logger.io
async def remove_submission(
    submission_id: UtilsUUID7,
    request: ModerationRequest,
    admin: str = Depends(require_admin),
    use_case: ModerateSubmissionUseCase = Depends(ModerateSubmissionUseCase.depends),
) -> SubmissionResponse:
    with tracer.start_as_current_span('controller.remove_submission') as span:
        span.set_attribute('admin', admin)
        submission = await use_case.remove(submission_id=submission_id, notes=request.notes)
        return submission_response(submission)


@router.post('/reap', status_code=status.HTTP_200_OK)
@Logger.io
async def reap_expired_holds(
    admin: str = Depends(require_admin),
    use_case: ReapExpiredHoldsUseCase = Depends(get_reap_expired_holds_use_case),
) -> ReapResponse:
    result = await use_case.execute()
    return ReapResponse(
        holds_reaped=result.holds_reaped,
        cells_freed=result.cells_freed,
        orphaned_cells_freed=result.orphaned_cells_freed,
    )
