"""Exception types shared by the review engine."""


class DupeReviewError(Exception):
    """Base class for dupe-review errors."""


class ConfigError(DupeReviewError):
    """Startup configuration is missing or unusable.

    Raised for a missing image root, or a partition file that cannot be read
    or decoded. Fatal: the command line reports it and exits.
    """


class GroupNotFoundError(DupeReviewError):
    """A group index is out of range, or every member file has vanished."""

    def __init__(self, index: int, reason: str = "Group not found"):
        super().__init__(f"{reason}: {index}")
        self.index = index
        self.reason = reason


class ConversionError(OSError):
    """Converting a raw image to a viewable file failed or timed out."""
