"""
Generator settings via pydantic-settings. Reads SHAPI_* env vars, falls back to .env.
CLI options override these per invocation.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SHAPI_", env_file=".env", extra="ignore")

    # module providing the `get` / `post` transport primitives for generated clients
    transport_module: str = "shapi.client.transport"
    # directories searched for descriptor modules (never imported, only read)
    source_roots: list[str] = ["."]

    # the single "structured error" status of the response protocol
    error_status: int = 400

    log_level: str = "WARNING"
    log_format: Literal["rich", "plain"] = "rich"


@lru_cache
def get_settings() -> Settings:
    return Settings()
