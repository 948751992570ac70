from collections.abc import AsyncGenerator
from typing import List

from fastapi import APIRouter, Depends, Query, status
import orjson
from sse_starlette.sse import EventSourceResponse

from src.platform.logging.loguru_io import Logger
from src.service.grid.app.query.get_cell_states_use_case import GetCellStatesUseCase
from src.service.grid.app.query.get_occupancy_use_case import GetOccupancyUseCase
from src.service.grid.app.query.stream_grid_state_use_case import StreamGridStateUseCase
from src.service.grid.driving_adapter.http_controller.schema.grid_schema import (
    CellDeltaResponse,
    CellStatesRequest,
    CellStatesResponse,
    GridChangesResponse,
    GridSnapshotResponse,
    OccupancyResponse,
)


router = APIRouter()


@router.post('/states', status_code=status.HTTP_200_OK)
@Logger.io(truncate_content=True)
async def get_cell_states(
    request: CellStatesRequest,
    use_case: GetCellStatesUseCase = Depends(GetCellStatesUseCase.depends),
) -> CellStatesResponse:
    states = await use_case.execute(cell_ids=request.cell_ids)
    return CellStatesResponse(states={cell_id: state.value for cell_id, state in states.items()})


@router.get('/snapshot', status_code=status.HTTP_200_OK)
@Logger.io(truncate_content=True)
async def get_grid_snapshot(
    use_case: StreamGridStateUseCase = Depends(StreamGridStateUseCase.depends),
) -> GridSnapshotResponse:
    snapshot = await use_case.snapshot()
    return GridSnapshotResponse(**snapshot.to_dict())


@router.get('/changes', status_code=status.HTTP_200_OK)
@Logger.io(truncate_content=True)
async def get_grid_changes(
    since: int = Query(..., ge=0),
    use_case: StreamGridStateUseCase = Depends(StreamGridStateUseCase.depends),
) -> GridChangesResponse:
    changes = use_case.changes_since(since=since)
    return GridChangesResponse(
        since=changes.since,
        seq=changes.seq,
        deltas=[CellDeltaResponse(**delta.to_dict()) for delta in changes.deltas],
        resync_required=changes.resync_required,
    )


@router.get('/stream', status_code=status.HTTP_200_OK)
async def stream_grid_state(
    use_case: StreamGridStateUseCase = Depends(StreamGridStateUseCase.depends),
) -> EventSourceResponse:
    """SSE push of the grid state: one snapshot event, then cell_changed deltas."""

    async def event_generator() -> AsyncGenerator[dict, None]:
        async for data in use_case.stream():
            event_type = data.pop('event_type')
            yield {'event': event_type.value, 'data': orjson.dumps(data).decode()}

    return EventSourceResponse(event_generator())


@router.get('/occupancy', status_code=status.HTTP_200_OK)
@Logger.io(truncate_content=True)
async def get_occupancy(
    use_case: GetOccupancyUseCase = Depends(GetOccupancyUseCase.depends),
) -> List[OccupancyResponse]:
    records = await use_case.execute()
    return [
        OccupancyResponse(
            submission_id=record.submission_id,
            status=record.status.value,
            top_left=record.top_left,
            bottom_right=record.bottom_right,
            cell_count=record.cell_count,
            video_url=record.video_url,
            poster_url=record.poster_url,
        )
        for record in records
    ]
