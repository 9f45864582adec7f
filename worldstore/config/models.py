"""
Pydantic-based configuration models for worldstore.

Each concern reads its own environment prefix; AppConfig composes them and is
the only object the rest of the code receives.
"""

from pathlib import Path

from pydantic import Field, field_validator

from pydantic_settings import BaseSettings

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8000, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1024 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1024-65535")
            raise ValueError("Port must be between 1024 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class StorageConfig(BaseSettings):
    """Document storage locations."""

    data_dir: Path = Field(default=Path("data"), description="Root directory for documents")
    cache_dir: Path = Field(default=Path("cache"), description="Root directory for derived caches")

    model_config = {"env_prefix": "STORAGE_", "case_sensitive": False, "extra": "ignore"}


class IndexConfig(BaseSettings):
    """Area index and change watcher configuration."""

    debounce_seconds: float = Field(default=1.0, description="Quiet period after the last change before a rebuild")
    watch_enabled: bool = Field(default=True, description="Watch area documents for external changes")
    progress_interval: int = Field(default=1000, description="Log rebuild progress every N documents")

    @field_validator("debounce_seconds")
    @classmethod
    def validate_debounce(cls, v: float) -> float:
        """Debounce window must be positive."""
        if v <= 0:
            raise ValueError("debounce_seconds must be greater than 0")
        return v

    @field_validator("progress_interval")
    @classmethod
    def validate_progress_interval(cls, v: int) -> int:
        """Progress interval must be at least 1."""
        if v < 1:
            raise ValueError("progress_interval must be at least 1")
        return v

    model_config = {"env_prefix": "INDEX_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="human", description="Log format")
    log_base: str = Field(default="logs", description="Base log directory")
    rotation_max_size: str = Field(default="10MB", description="Log rotation max size")
    rotation_backup_count: int = Field(default=5, description="Number of backup log files")
    disable_logging: bool = Field(default=False, description="Disable all file and console logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "production"]
        if v not in valid_environments:
            logger.error("Invalid logging environment", environment=v, valid_environments=valid_environments)
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "human"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict shape expected by setup_enhanced_logging."""
        return {
            "environment": self.environment,
            "level": self.level,
            "format": self.format,
            "log_base": self.log_base,
            "rotation": {
                "max_size": self.rotation_max_size,
                "backup_count": self.rotation_backup_count,
            },
            "disable_logging": self.disable_logging,
        }


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    Access via the get_config() singleton function.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to a plain dict (used for logging setup and diagnostics)."""
        return {
            "host": self.server.host,
            "port": self.server.port,
            "data_dir": str(self.storage.data_dir),
            "cache_dir": str(self.storage.cache_dir),
            "index": {
                "debounce_seconds": self.index.debounce_seconds,
                "watch_enabled": self.index.watch_enabled,
                "progress_interval": self.index.progress_interval,
            },
            "logging": self.logging.to_legacy_dict(),
        }
