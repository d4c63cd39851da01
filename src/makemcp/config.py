"""Process settings for MakeMCP."""

from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="makemcp_", case_sensitive=False)

    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    spec_timeout_seconds: float = Field(default=30)
    max_sample_depth: int = Field(default=8)
    cors_origins: str = Field(default="*")

    def cors_origin_list(self) -> List[str]:
        return [item.strip() for item in self.cors_origins.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
