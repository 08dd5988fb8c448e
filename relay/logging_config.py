from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, List, Optional

from .config import RelaySettings


def _parse_level(value: Any, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, int):
        return value
    text = str(value).strip().upper()
    if not text:
        return default

    level = logging.getLevelName(text)
    if isinstance(level, int):
        return level

    try:
        return int(text)
    except ValueError:
        return default


def configure_logging(settings: RelaySettings, *, override_level: Optional[str] = None) -> None:
    """Configure Python logging for the relay.

    Replaces any handlers already installed on the root logger, so calling it
    more than once (tests, reloads) does not duplicate output.
    """
    level = _parse_level(override_level or settings.log_level, logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler()]

    if settings.log_file and settings.log_file.strip():
        p = Path(os.path.expanduser(settings.log_file))
        p.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(p, encoding="utf-8"))

    fmt = settings.log_format.strip() or "%(asctime)s %(levelname)s %(name)s: %(message)s"
    formatter = logging.Formatter(fmt=fmt, datefmt=settings.log_datefmt or None)
    for h in handlers:
        h.setFormatter(formatter)

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)

    # Let uvicorn's records flow through the root handlers at the same level
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lib_logger = logging.getLogger(name)
        lib_logger.handlers.clear()
        lib_logger.propagate = True
        lib_logger.setLevel(level)

    # Tortoise logs every query at DEBUG
    logging.getLogger("tortoise").setLevel(max(level, logging.INFO))

    logging.captureWarnings(True)


__all__ = ["configure_logging"]
