"""
Configuration for pixgrid.

Settings are plain Pydantic models populated from environment variables,
so they can be validated and overridden in tests.
"""

import logging
import os
from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "PIXGRID_"

DEFAULT_MAX_PIXELS = 100_000_000
DEFAULT_PADDING = "replicate"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class SystemSettings(BaseModel):
    """Logging and debug settings"""

    log_level: str = Field(default="INFO", description="Root log level")
    debug: bool = Field(default=False, description="Enable debug mode")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept standard logging level names only."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class ImageSettings(BaseModel):
    """Image allocation limits"""

    max_pixels: int = Field(
        default=DEFAULT_MAX_PIXELS,
        gt=0,
        description="Largest width * height accepted when allocating an image",
    )


class KernelSettings(BaseModel):
    """Convolution defaults"""

    default_padding: str = Field(
        default=DEFAULT_PADDING,
        description="Padding mode used when convolve() is called without one",
    )

    @field_validator("default_padding")
    @classmethod
    def validate_default_padding(cls, v: str) -> str:
        """Constant padding needs a value, so it cannot be the default."""
        mode = v.lower()
        if mode not in ("zero", "replicate", "wrap", "mirror"):
            raise ValueError(f"Unknown default padding mode: {v}")
        return mode


class Settings(BaseModel):
    """Top-level settings"""

    system: SystemSettings = Field(default_factory=SystemSettings)
    image: ImageSettings = Field(default_factory=ImageSettings)
    kernel: KernelSettings = Field(default_factory=KernelSettings)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Validated settings
        """
        env = os.environ if environ is None else environ

        system: Dict[str, Any] = {}
        image: Dict[str, Any] = {}
        kernel: Dict[str, Any] = {}

        if f"{ENV_PREFIX}LOG_LEVEL" in env:
            system["log_level"] = env[f"{ENV_PREFIX}LOG_LEVEL"]
        if f"{ENV_PREFIX}DEBUG" in env:
            system["debug"] = env[f"{ENV_PREFIX}DEBUG"].lower() in ("1", "true", "yes", "on")
        if f"{ENV_PREFIX}MAX_PIXELS" in env:
            image["max_pixels"] = int(env[f"{ENV_PREFIX}MAX_PIXELS"])
        if f"{ENV_PREFIX}DEFAULT_PADDING" in env:
            kernel["default_padding"] = env[f"{ENV_PREFIX}DEFAULT_PADDING"]

        return cls(
            system=SystemSettings(**system),
            image=ImageSettings(**image),
            kernel=KernelSettings(**kernel),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return self.model_dump()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings.from_env()


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment"""
    get_settings.cache_clear()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from settings (applications only, never called on import)"""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.system.log_level),
        format=LOG_FORMAT,
    )
