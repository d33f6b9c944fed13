import os
from dotenv import load_dotenv
from pathlib import Path

root_dir = Path(__file__).resolve().parent.parent
env_path = root_dir / ".env"

load_dotenv(env_path)

class Config:
    DB_PATH = os.getenv("COLLISION_DB_PATH", ":memory:")

    NYC_COLLISION_URL = os.getenv("NYC_COLLISION_URL")
    DATA_DIR = Path(os.getenv("COLLISION_DATA_DIR", "./collision_data"))

    OUTPUT_DIR_RISK = Path(os.getenv("OUTPUT_DIR_RISK", "./outputs/RiskEngine"))

    # Statistical tunables (overridable per call as well)
    PRIOR_STRENGTH = float(os.getenv("RISK_PRIOR_STRENGTH", "50"))
    MIN_GROUP_SIZE = int(os.getenv("RISK_MIN_GROUP_SIZE", "30"))
    TOP_N = int(os.getenv("RISK_TOP_N", "15"))
    MIN_EXACT_MATCHES = int(os.getenv("RISK_MIN_EXACT_MATCHES", "30"))
    BLEND_PRIOR = float(os.getenv("RISK_BLEND_PRIOR", "50"))
    ODDS_RATIO_FLOOR = float(os.getenv("RISK_ODDS_RATIO_FLOOR", "0.25"))
    ODDS_RATIO_CEILING = float(os.getenv("RISK_ODDS_RATIO_CEILING", "4.0"))
    EPSILON = 1e-9

    @classmethod
    def initialize_folders(cls):
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)
        cls.OUTPUT_DIR_RISK.mkdir(parents=True, exist_ok=True)
