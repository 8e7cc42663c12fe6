"""Logging setup driven by ``configs/logging.yaml``."""
from __future__ import annotations

import logging
import logging.config
from pathlib import Path

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "logging.yaml"
FALLBACK_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(config_path: str | Path | None = None, *, level: str | None = None) -> None:
    """Apply the YAML dictConfig, or ``basicConfig`` when the file is absent.

    ``level`` overrides the level of the ``loxodon`` logger tree.
    """

    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if path.is_file():
        with path.open("r", encoding="utf-8") as config_file:
            logging.config.dictConfig(yaml.safe_load(config_file))
    else:
        logging.basicConfig(level=logging.INFO, format=FALLBACK_FORMAT)
    if level:
        logging.getLogger("loxodon").setLevel(level.upper())


__all__ = ["configure_logging"]
