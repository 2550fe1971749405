"""
Logging setup.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

NOISY_LOGGERS = ("ultralytics", "matplotlib", "PIL")


def setup_logging(log_path: Optional[str], log_level: str) -> None:
    handlers: list = [logging.StreamHandler()]
    if log_path:
        log_dir = os.path.dirname(log_path)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )

    # Per-frame inference chatter drowns out pipeline messages.
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
