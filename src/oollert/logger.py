"""
Logging setup.

Every module logs through ``logging.getLogger(__name__)``; this only wires
the root handlers once at startup.
"""

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(log_level: str = "INFO", log_file: str = "logs/oollert.log") -> None:
    """
    Configure root logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: path of the log file; parent directories are created
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
