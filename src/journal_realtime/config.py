"""
Runtime settings, read from ``JOURNAL_RT_*`` environment variables or ``.env``.
"""

from functools import lru_cache
from typing import Union

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE_URL = "http://localhost:3001/api"
DEFAULT_SOCKET_URL = "http://localhost:3001"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JOURNAL_RT_",
        env_file=".env",
        extra="ignore",
    )

    jwt_secret: str = Field(default="dev-secret")
    jwt_algorithm: str = Field(default="HS256")

    socketio_path: str = Field(default="socket.io")
    cors_allowed_origins: str = Field(default="*")
    close_displaced_sessions: bool = Field(default=True)
    socketio_logging: bool = Field(default=False)

    reconnect_max_attempts: int = Field(default=5, ge=0)
    reconnect_delay: float = Field(default=3.0, ge=0)
    ready_timeout: float = Field(default=15.0, gt=0)

    api_base_url: str = Field(default=DEFAULT_API_BASE_URL)
    socket_url: str = Field(default=DEFAULT_SOCKET_URL)

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3001)
    log_level: str = Field(default="INFO")

    def cors_origins(self) -> Union[list[str], str]:
        if self.cors_allowed_origins.strip() == "*":
            return "*"
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
