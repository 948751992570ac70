from src.service.grid.driven_adapter.model.grid_cell_model import GridCellModel
from src.service.grid.driven_adapter.model.hold_model import HoldModel
from src.service.grid.driven_adapter.model.submission_model import SubmissionModel

__all__ = ['GridCellModel', 'HoldModel', 'SubmissionModel']
