"""Configuration and logging shared by the engine and the command line."""

from .config import Settings, get_config_path, load_user_config, set_config
from .logging_config import get_logger, setup_logging

__all__ = [
    "Settings",
    "get_config_path",
    "get_logger",
    "load_user_config",
    "set_config",
    "setup_logging",
]
