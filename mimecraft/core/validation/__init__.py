"""Pre-serialization checks on message values."""

from .message import MessageValidator

__all__ = ["MessageValidator"]
