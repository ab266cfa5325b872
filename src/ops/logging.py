"""
Logging setup.
"""

from __future__ import annotations

import logging
import os
from typing import Optional


def setup_logging(log_path: Optional[str], log_level: str) -> None:
    """Configure the root logger with a console handler and, if given, a log file."""
    handlers = [logging.StreamHandler()]
    if log_path:
        log_dir = os.path.dirname(log_path)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
