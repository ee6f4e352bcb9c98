"""Utility functions for configuration and logging."""

from dupe_review.utils.config import Config
from dupe_review.utils.logger import setup_logger

__all__ = ["Config", "setup_logger"]
