"""Message, body part and attachment models."""

from .message import (
    Attachment,
    Disposition,
    Importance,
    Message,
    Part,
    Priority,
    Sensitivity,
    TransferEncoding,
)

__all__ = [
    "Attachment",
    "Disposition",
    "Importance",
    "Message",
    "Part",
    "Priority",
    "Sensitivity",
    "TransferEncoding",
]
