"""
Application configuration.

Loaded from ``config/app_config.yaml`` by default; ``OOLLERT_CONFIG`` points
at another file. Related classes:
  - server.dependencies: builds repositories and the session store from this
  - oollert.logger.setup_logger: consumes the log settings
"""

import os
from dataclasses import dataclass
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo

import tzlocal
import yaml

PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_CONFIG_PATH = PROJECT_ROOT / "config" / "app_config.yaml"


@dataclass
class ServerConfig:
    """HTTP server settings"""

    host: str = "127.0.0.1"
    port: int = 3000
    debug: bool = False


@dataclass
class SessionConfig:
    """Session cookie settings"""

    cookie_name: str = "oollert_sid"
    max_age_seconds: int = 14 * 24 * 60 * 60
    secure_cookie: bool = False


@dataclass
class Config:
    """Top-level application settings"""

    server: ServerConfig = None  # type: ignore
    session: SessionConfig = None  # type: ignore

    # empty means the repository default / OOLLERT_DB_PATH
    database_path: Optional[str] = None

    # IANA zone used for "today"; empty means the host's local zone
    timezone: Optional[str] = None
    upcoming_horizon_days: int = 7

    log_level: str = "INFO"
    log_file: str = "logs/oollert.log"

    def __post_init__(self):
        if self.server is None:
            self.server = ServerConfig()
        if self.session is None:
            self.session = SessionConfig()

    def tz(self) -> tzinfo:
        """Configured IANA zone, else the host's local zone.

        Always a DST-aware zone, never a fixed UTC offset, so midnight of a
        date-only due date stays midnight across DST changes.
        """
        if self.timezone:
            return ZoneInfo(self.timezone)
        return tzlocal.get_localzone()

    def now(self) -> datetime:
        """Current time, timezone-aware, in the configured zone."""
        return datetime.now(self.tz())

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "Config":
        """Read settings from a YAML file.

        Args:
            config_path: file to read (defaults to config/app_config.yaml)

        Returns:
            Config: populated settings
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data: Dict[str, Any] = yaml.safe_load(f) or {}

        server_data = yaml_data.get("server", {}) or {}
        session_data = yaml_data.get("session", {}) or {}
        database_data = yaml_data.get("database", {}) or {}
        task_data = yaml_data.get("tasks", {}) or {}
        log_data = yaml_data.get("log", {}) or {}

        return cls(
            server=ServerConfig(
                host=server_data.get("host", "127.0.0.1"),
                port=int(server_data.get("port", 3000)),
                debug=bool(server_data.get("debug", False)),
            ),
            session=SessionConfig(
                cookie_name=session_data.get("cookie_name", "oollert_sid"),
                max_age_seconds=int(session_data.get("max_age_seconds", 14 * 24 * 60 * 60)),
                secure_cookie=bool(session_data.get("secure_cookie", False)),
            ),
            database_path=database_data.get("path") or None,
            timezone=task_data.get("timezone") or None,
            upcoming_horizon_days=int(task_data.get("upcoming_horizon_days", 7)),
            log_level=log_data.get("level", "INFO"),
            log_file=log_data.get("file", "logs/oollert.log"),
        )

    @classmethod
    def from_env(cls) -> "Config":
        """Settings from environment variables only (container deployments)."""
        return cls(
            server=ServerConfig(
                host=os.getenv("HOST", "127.0.0.1"),
                port=int(os.getenv("PORT", "3000")),
                debug=os.getenv("OOLLERT_DEBUG", "").lower() in ("1", "true", "yes"),
            ),
            session=SessionConfig(
                cookie_name=os.getenv("SESSION_COOKIE_NAME", "oollert_sid"),
                max_age_seconds=int(os.getenv("SESSION_MAX_AGE", str(14 * 24 * 60 * 60))),
                secure_cookie=os.getenv("SESSION_SECURE_COOKIE", "").lower() in ("1", "true", "yes"),
            ),
            database_path=os.getenv("OOLLERT_DB_PATH") or None,
            timezone=os.getenv("OOLLERT_TIMEZONE") or None,
            upcoming_horizon_days=int(os.getenv("UPCOMING_HORIZON_DAYS", "7")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/oollert.log"),
        )

    @classmethod
    def load(cls) -> "Config":
        """``OOLLERT_CONFIG`` file, else the default YAML, else the environment."""
        env_path = os.getenv("OOLLERT_CONFIG")
        if env_path:
            return cls.from_yaml(Path(env_path))
        if DEFAULT_CONFIG_PATH.exists():
            return cls.from_yaml(DEFAULT_CONFIG_PATH)
        return cls.from_env()
