from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional
from pathlib import Path
import os

class Settings(BaseSettings):
    APP_NAME: str = "runledger"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Workspace the ledger is bound to; the store lives under its reserved dir
    WORKSPACE_ROOT: Path = Path(os.getcwd())
    DB_PATH: Optional[Path] = None
    TOKENS_PATH: str = "tokens/tokens.json"
    ENABLED_MODULES: list[str] = ["hello-world"]

    # Web host
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # Maintenance
    RETENTION_DAYS: int = 30
    MAX_RUNS: int = 500
    RETENTION_INTERVAL_MINUTES: int = 60

    class Config:
        env_file = ".env"
        env_prefix = "RUNLEDGER_"

@lru_cache()
def get_settings():
    return Settings()
