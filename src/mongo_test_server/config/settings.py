"""Settings for disposable test servers, read from the environment."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class LoggingConfig(BaseSettings):
    """Logging configuration settings."""

    level: str = Field(default="INFO", description="Log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    json_format: bool = Field(default=False, description="Use JSON log format")

    class Config:
        env_prefix = "LOG_"


class ServerSettings(BaseSettings):
    """Defaults applied to every newly constructed ``Mongod``."""

    port: int = Field(default=27017, ge=1, le=65535, description="TCP port")
    path: Optional[str] = Field(
        default=None, description="mongod binary (default: looked up on PATH)"
    )
    name: Optional[str] = Field(
        default=None, description="Logical name seeding the database name"
    )
    use_ram_disk: bool = Field(
        default=False, description="Keep data files on a RAM-backed filesystem"
    )
    oplog_size: int = Field(default=200, ge=1, description="Oplog size in MB")
    startup_retries: int = Field(
        default=10, ge=0, description="Readiness probe retries"
    )
    retry_interval: float = Field(
        default=0.5, gt=0, description="Seconds between readiness probes"
    )
    log_tail_lines: int = Field(
        default=50, ge=0, description="Server log lines quoted in errors"
    )

    class Config:
        env_prefix = "MONGO_TEST_SERVER_"


class Settings(BaseSettings):
    """Main settings."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerSettings = Field(default_factory=ServerSettings)
