"""Logger factory shared by the extractor, the SMS adapter and the session."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from rich.logging import RichHandler

from otpautoread.utils.env import get_bool_env


ROOT_LOGGER = "otpautoread"


def get_logger(name: str, level: Optional[int] = None, *, rich: Optional[bool] = None) -> logging.Logger:
    """Return a child of the package logger, installing the handler once."""
    root = _configure_root(level, rich)
    if name == ROOT_LOGGER:
        return root
    return root.getChild(name)


def set_log_level(level: int | str) -> None:
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def _configure_root(level: Optional[int], rich: Optional[bool]) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    if logger.handlers:
        if level is not None:
            set_log_level(level)
        return logger

    level = logging.INFO if level is None else level
    if rich is None:
        rich = get_bool_env("OTPAUTOREAD_RICH_LOGS", default=True)

    logger.setLevel(level)
    if rich:
        handler: logging.Handler = RichHandler(
            level=level,
            markup=False,
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="%H:%M:%S"))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(name)s %(levelname)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logger.addHandler(handler)
    logger.propagate = False
    return logger
