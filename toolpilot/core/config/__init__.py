"""Configuration module."""

from toolpilot.core.config.loader import load_config
from toolpilot.core.config.schema import Config

__all__ = ["Config", "load_config"]
