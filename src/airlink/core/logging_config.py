"""Lightweight logging setup for applications embedding the crypto core."""

import logging
import sys
from typing import Optional, Union

from .config import CryptoSettings


def configure_logging(
    level: Union[int, str, None] = None,
    settings: Optional[CryptoSettings] = None,
) -> None:
    # Configure root logger once; keep output simple for terminals.
    # An explicit level wins over settings.log_level (AIRLINK_LOG_LEVEL).
    if level is None:
        level = settings.log_level if settings is not None else logging.INFO
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stdout,
    )
