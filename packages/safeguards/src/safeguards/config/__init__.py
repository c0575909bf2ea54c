"""Configuration module for safeguards."""

from safeguards.config.logging import configure_logging, get_logger
from safeguards.config.settings import FlatSettings, get_settings

__all__ = ["FlatSettings", "get_settings", "configure_logging", "get_logger"]
