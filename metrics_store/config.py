from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LISTEN_PORT = 4000
DEFAULT_MAX_REQUEST_BODY_SIZE = 1048576
DEFAULT_SHUTDOWN_TIMEOUT = 10


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", populate_by_name=True)

    listen_host: str = Field(default="0.0.0.0", alias="LISTEN_HOST")
    listen_port: int = Field(default=DEFAULT_LISTEN_PORT, ge=1, le=65535, alias="LISTEN_PORT")
    debug: bool = Field(default=False, alias="DEBUG")
    max_request_body_size: int = Field(default=DEFAULT_MAX_REQUEST_BODY_SIZE, gt=0, alias="MAX_REQUEST_BODY_SIZE")
    allow_unknown_fields: bool = Field(default=False, alias="ALLOW_UNKNOWN_FIELDS")
    shutdown_timeout: int = Field(default=DEFAULT_SHUTDOWN_TIMEOUT, ge=0, alias="SHUTDOWN_TIMEOUT")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
