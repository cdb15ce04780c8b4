from __future__ import annotations
import logging
import logging.config
import os
from pathlib import Path
from typing import Optional
import yaml

LOG_LEVEL_ENV = "ARCHIVE_SEARCH_LOG_LEVEL"


def setup_logging(config_path: str = "configs/logging.yaml", level: Optional[str] = None) -> None:
    """
    Setup logging configuration from a YAML file.

    An explicit level (or $ARCHIVE_SEARCH_LOG_LEVEL) overrides the root level of
    whatever configuration was loaded.
    """
    path = Path(config_path)
    if path.exists():
        with path.open("r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f)
        logging.config.dictConfig(cfg)
    else:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(name)s | %(message)s")

    override = level or os.environ.get(LOG_LEVEL_ENV)
    if override:
        logging.getLogger().setLevel(override.upper())


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
