from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Process-wide settings, read once at startup and passed to the gateway"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    # Provider credentials; an absent credential means the provider is skipped
    caiyun_api_token: Optional[str] = None
    amap_api_key: Optional[str] = None

    weather_lang: Literal["zh_CN", "en_US"] = "zh_CN"
    weather_timeout: float = 10.0
    location_timeout: float = 3.0
    simulate_on_upstream_failure: bool = True

    host: str = "0.0.0.0"
    port: int = 8000
    transport: Literal["stdio", "sse", "streamable-http"] = "stdio"
    log_dir: str = "logs"
    log_level: str = "INFO"

    @field_validator("caiyun_api_token", "amap_api_key", mode="before")
    @classmethod
    def _blank_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value
