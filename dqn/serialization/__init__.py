"""Saving and restoring training sessions."""

from dqn.serialization.deserializer import SessionDeserializer
from dqn.serialization.errors import (
    SessionError,
    SessionFormatError,
    SessionIOError,
    SessionPathNotEmptyError,
)
from dqn.serialization.serializer import SessionSerializer

__all__ = [
    "SessionDeserializer",
    "SessionSerializer",
    "SessionError",
    "SessionFormatError",
    "SessionIOError",
    "SessionPathNotEmptyError",
]
