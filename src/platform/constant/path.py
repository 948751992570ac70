from pathlib import Path


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent

# Log directory
LOG_DIR = BASE_DIR / 'logs'

# Local selection storage for the viewport client
SELECTION_STATE_DIR = BASE_DIR / '.selection_state'
