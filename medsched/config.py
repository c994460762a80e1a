from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    max_suggestions: int = Field(default=4, ge=1)
    log_level: str = "INFO"
    seed_file: Path | None = None

    model_config = SettingsConfigDict(env_prefix="MEDSCHED_", env_file=".env")


settings = Settings()
