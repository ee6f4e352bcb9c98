"""User interface components (terminal reporting)."""

from dupe_review.ui.review import ReviewUI

__all__ = ["ReviewUI"]
