"""Configuration module for spaceclaw."""

from spaceclaw.config.loader import load_config, get_config_path
from spaceclaw.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
