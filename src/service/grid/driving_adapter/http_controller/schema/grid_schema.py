from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from src.platform.types.uuid7_utils_types import UtilsUUID7


class CellStatesRequest(BaseModel):
    cell_ids: List[str] = Field(..., min_length=1, max_length=10_000)

    class Config:
        json_schema_extra = {'example': {'cell_ids': ['0-0', '0-1', '999-999']}}


class CellStatesResponse(BaseModel):
    states: Dict[str, str]


class GridSnapshotResponse(BaseModel):
    """Non-free cells as of `seq`; cells not listed are free"""

    seq: int
    cells: Dict[str, str]


class CellDeltaResponse(BaseModel):
    seq: int
    cell_id: str
    state: str


class GridChangesResponse(BaseModel):
    since: int
    seq: int
    deltas: List[CellDeltaResponse]
    resync_required: bool = False


class OccupancyResponse(BaseModel):
    submission_id: UtilsUUID7
    status: str
    top_left: str
    bottom_right: str
    cell_count: int
    video_url: Optional[str] = None
    poster_url: Optional[str] = None
