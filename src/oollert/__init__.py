"""Application-wide configuration and logging."""

from .config import Config, ServerConfig, SessionConfig
from .logger import setup_logger

__all__ = ["Config", "ServerConfig", "SessionConfig", "setup_logger"]
