"""Configuration module for ScreenSync.

Settings are read from environment variables (and an optional .env file)
through pydantic-settings and validated once at startup.
"""

from config.settings import GlobalConfig, get_config

__all__ = ["GlobalConfig", "get_config"]
