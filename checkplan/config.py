from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Key-value store (SQLite file + table holding every entity)
    db_path: str = "data/checkplan.db"
    kv_table_name: str = "kv_store"
    kv_timeout_seconds: float = 5.0  # sqlite busy timeout per call

    # Scheduling policy
    require_delayed_comment: bool = False  # reject empty comments on overdue completions

    # Seed data guard: skip known sample devices on catalog import
    prevent_auto_seed: bool = False

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"


settings = Settings()
