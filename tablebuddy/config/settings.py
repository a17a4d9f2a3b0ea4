"""
Configuration management for the table engine.
Loads settings from environment variables and the project .env file.
"""

from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from loguru import logger

# Find project root (where .env and data/ live)
# This file is at tablebuddy/config/settings.py, so project root is 3 levels up
_project_root = Path(__file__).resolve().parent.parent.parent

# Export for use by the logger and the configuration store - ensures consistent data/ paths
PROJECT_ROOT = _project_root

# Load environment variables from project root
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(dotenv_path=_env_file, override=True)
    logger.debug(f"Loaded .env from: {_env_file}")
else:
    # Fallback to default behavior (current directory)
    load_dotenv(override=False)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Row identity
    identity_field: str = Field(default="Id")

    # Global search
    search_threshold: float = Field(default=0.2)  # Accept scores at or below (0.0 = exact)
    search_min_chars: int = Field(default=2)
    search_debounce_seconds: float = Field(default=0.35)

    # Datatable constraints
    max_row_selection: int = Field(default=200)
    compound_name_objects: List[str] = Field(default_factory=lambda: ["Contact"])

    # Local query analysis (sqlglot dialect, empty = sqlglot default)
    sql_dialect: str = Field(default="")

    # Configuration store
    config_db_path: str = Field(default="data/table_configs.db")

    # Logging
    log_level: str = Field(default="INFO")
    log_to_file: bool = Field(default=True)
    log_dir: str = Field(default="data/logs")

    class Config:
        env_prefix = "TABLEBUDDY_"
        env_file = str(_project_root / ".env")
        env_file_encoding = "utf-8"
        extra = "ignore"


# Create global settings instance
settings = Settings()


def resolve_project_path(path: str) -> Path:
    """Resolve a settings path relative to the project root."""
    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = _project_root / resolved
    return resolved
