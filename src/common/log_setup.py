"""
Logging setup driven by application settings
"""

import logging
from pathlib import Path
from typing import Optional

from .config import Settings, settings as default_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(config: Optional[Settings] = None) -> logging.Logger:
    """
    Configure root logger from settings

    Args:
        config: Settings to read log level and file from

    Returns:
        The configured root logger
    """
    config = config or default_settings
    root = logging.getLogger()
    root.setLevel(config.log_level.upper())

    formatter = logging.Formatter(LOG_FORMAT)

    if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
               for h in root.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
