"""Errors raised while saving or restoring a training session."""

from pathlib import Path
from typing import Union


class SessionError(Exception):
    """Base class for recoverable session save/load failures.

    Training is never interrupted by these; the caller reports them and
    carries on.
    """
    pass


class SessionPathNotEmptyError(SessionError):
    """Raised when saving into a directory that already has content."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Session directory is not empty: {self.path}")


class SessionIOError(SessionError):
    """Raised when a session file cannot be read or written.

    Attributes:
        path: File or directory that failed
    """

    def __init__(self, path: Union[str, Path], cause: BaseException):
        self.path = Path(path)
        super().__init__(f"I/O error on {self.path}: {cause}")


class SessionFormatError(SessionError):
    """Raised when a session document or chunk has unexpected content."""

    def __init__(self, path: Union[str, Path], message: str):
        self.path = Path(path)
        super().__init__(f"Malformed session file {self.path}: {message}")
