from pathlib import Path

# Path to the root of the repository
ROOT_DIR = Path(__file__).parent.parent

# Path to the data directory
DATA_DIR = ROOT_DIR / "data"

# Path to the configs directory
CONFIG_DIR = ROOT_DIR / "configs"

# Default noise profile
DEFAULT_CONFIG = CONFIG_DIR / "fusion_default.yaml"
