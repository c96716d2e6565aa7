"""
Exception types raised by the learning-path engine and its collaborators.
"""

from typing import List, Optional


class LearnPathError(Exception):
    """Base class for every error raised by this package."""


class PathNotFoundError(LearnPathError, KeyError):
    """Raised when a path id does not refer to an existing learning path."""

    def __init__(self, path_id: str) -> None:
        self.path_id = path_id
        super().__init__(f"unknown learning path: {path_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class PrerequisiteCycleError(LearnPathError):
    """Raised when the prerequisite graph is not acyclic.

    Attributes:
        cycles: Each cycle as a list of path ids.
    """

    def __init__(self, cycles: List[List[str]]) -> None:
        self.cycles = cycles
        rendered = "; ".join(" -> ".join(c) for c in cycles)
        super().__init__(f"prerequisite cycle(s) detected: {rendered}")


class StorageError(LearnPathError):
    """Raised when the state store cannot be read or written."""

    def __init__(self, message: str, original: Optional[Exception] = None) -> None:
        self.original = original
        super().__init__(message if original is None else f"{message}: {original}")


class VideoSearchError(LearnPathError):
    """Raised when the video search API returns an error.

    Attributes:
        status_code: HTTP status of the failed response (``None`` for
                     transport failures).
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class QuotaExceededError(VideoSearchError):
    """Raised on HTTP 403/429 from the video search API."""
