"""Logging setup for applications embedding the photo pipeline"""

import logging
from typing import Optional

from photomap.config import settings


def configure_logging(level: Optional[str] = None):
    """Configure root logging with the pipeline's standard format"""
    log_level = getattr(logging, (level or settings.log_level).upper())
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(log_level)
