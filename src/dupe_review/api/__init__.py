"""HTTP API layer."""

from dupe_review.api.app import create_app

__all__ = ["create_app"]
