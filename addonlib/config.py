"""
Centralized configuration for addonlib

Provides pydantic-settings based configuration with:
- Environment variable loading (ADDONLIB_ prefix, .env support)
- Type validation
- Default values

Usage:
    from addonlib.config import get_config

    config = get_config()
    print(config.catalog_url)
    print(config.resolved_artifact_dir)
"""

import logging
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from addonlib.exceptions import MalformedVersion
from addonlib.log import SUCCESS
from addonlib.versioning import parse_version

STATE_FILE_NAME = "addons.json"


class AddonLibConfig(BaseSettings):
    """
    Configuration for the addon manager

    All settings can be overridden via environment variables with ADDONLIB_ prefix.
    For example: ADDONLIB_HOST_VERSION, ADDONLIB_CATALOG_URL, etc.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ADDONLIB_",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================
    # Host Configuration
    # ============================================

    host_version: str = Field(
        default="0.0.0",
        description="Version of the host application extensions are checked against"
    )

    # ============================================
    # Catalog Configuration
    # ============================================

    catalog_url: Optional[str] = Field(
        default=None,
        description="Primary catalog URL"
    )

    backup_catalog_url: Optional[str] = Field(
        default=None,
        description="Catalog URL used when the primary one fails"
    )

    request_timeout: float = Field(
        default=15,
        gt=0,
        description="Timeout in seconds for each HTTP request"
    )

    max_retries: int = Field(
        default=3,
        ge=0,
        description="Retries for HTTP requests answered with 429/5xx"
    )

    # ============================================
    # Storage Configuration
    # ============================================

    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".addonlib",
        description="Directory holding the desired-state file"
    )

    artifact_dir: Optional[Path] = Field(
        default=None,
        description="Directory holding extension artifacts (defaults to <data_dir>/extensions)"
    )

    artifact_extension: str = Field(
        default="jar",
        description="File suffix of extension artifacts, without the dot"
    )

    # ============================================
    # Logging Configuration
    # ============================================

    log_level: str = Field(
        default="INFO",
        description="Log level for the addonlib logger"
    )

    # ============================================
    # Validators
    # ============================================

    @field_validator("host_version")
    @classmethod
    def validate_host_version(cls, v: str) -> str:
        """Host version must be a dotted numeric version"""
        try:
            parse_version(v)
        except MalformedVersion as e:
            raise ValueError(str(e))
        return v

    @field_validator("artifact_extension")
    @classmethod
    def validate_artifact_extension(cls, v: str) -> str:
        v = v.lstrip(".")
        if not v or not all(c.isalnum() for c in v):
            raise ValueError("artifact_extension must be alphanumeric, e.g. 'jar'")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(
                f"log_level must be one of: {', '.join(valid_levels)}"
            )
        return v.upper()

    @property
    def state_file(self) -> Path:
        return self.data_dir / STATE_FILE_NAME

    @property
    def resolved_artifact_dir(self) -> Path:
        return self.artifact_dir or self.data_dir / "extensions"

    @property
    def catalog_urls(self) -> List[str]:
        """Catalog sources in the order they are tried"""
        return [url for url in (self.catalog_url, self.backup_catalog_url) if url]

    def configure_logging(self) -> None:
        """Apply log_level to the addonlib logger"""
        level = SUCCESS if self.log_level == "SUCCESS" else getattr(logging, self.log_level)
        logging.getLogger("addonlib").setLevel(level)


# Global config instance
_config: Optional[AddonLibConfig] = None


def get_config(force_reload: bool = False) -> AddonLibConfig:
    """
    Get the global configuration instance

    Args:
        force_reload: Force reload configuration from environment

    Returns:
        AddonLibConfig instance
    """
    global _config

    if _config is None or force_reload:
        _config = AddonLibConfig()

    return _config
