from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REMOTEARGS_", env_file=".env", extra="ignore")

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_colors: bool = True

    # Codec: "portable" packs bits by hand, "native" uses the stdlib encoder.
    # Output is identical either way.
    codec_backend: Literal["portable", "native"] = Field(default="portable")


settings = Settings()
