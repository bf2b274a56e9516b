"""Message domain models"""

import copy
import mimetypes
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from mimecraft.utils.errors import AttachmentNotFoundError


class TransferEncoding(str, Enum):
    """Content-Transfer-Encoding values the body encoder understands."""

    SEVEN_BIT = "7bit"
    QUOTED_PRINTABLE = "quoted-printable"
    BASE64 = "base64"

    @classmethod
    def from_string(cls, value: str) -> "TransferEncoding":
        """Create TransferEncoding from string.

        Args:
            value (str): The encoding name, case-insensitive.

        Returns:
            TransferEncoding: The corresponding enum value.

        Raises:
            ValueError: If the encoding is not supported.
        """
        try:
            return cls(value.strip().lower())

        except ValueError:
            raise ValueError(f"Unsupported transfer encoding: {value}")


class Importance(str, Enum):
    """Importance header values (RFC 2156)."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class Priority(str, Enum):
    """Priority header values (RFC 2156)."""

    NORMAL = "normal"
    URGENT = "urgent"
    NON_URGENT = "non-urgent"


class Sensitivity(str, Enum):
    """Sensitivity header values (RFC 2156)."""

    PERSONAL = "Personal"
    PRIVATE = "Private"
    COMPANY_CONFIDENTIAL = "Company-Confidential"


class Disposition(str, Enum):
    """Content-Disposition types for attachments."""

    ATTACHMENT = "attachment"
    INLINE = "inline"


def _to_crlf(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n").replace("\n", "\r\n")


@dataclass
class Part:
    """One unit of body content."""

    content_type: str
    content: bytes
    charset: Optional[str] = None
    transfer_encoding: TransferEncoding = TransferEncoding.QUOTED_PRINTABLE

    def __post_init__(self):
        if not isinstance(self.transfer_encoding, TransferEncoding):
            self.transfer_encoding = TransferEncoding.from_string(self.transfer_encoding)

    @classmethod
    def text(
        cls,
        text: str,
        subtype: str = "plain",
        charset: str = "utf-8",
        transfer_encoding: TransferEncoding = TransferEncoding.QUOTED_PRINTABLE,
    ) -> "Part":
        """Build a text part, normalising line endings to CRLF."""
        return cls(
            content_type=f"text/{subtype}",
            content=_to_crlf(text).encode(charset),
            charset=charset,
            transfer_encoding=transfer_encoding,
        )

    @classmethod
    def html(cls, html: str, charset: str = "utf-8") -> "Part":
        """Build a text/html part."""
        return cls.text(html, subtype="html", charset=charset)


@dataclass
class Attachment:
    """A file carried alongside the message body."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"
    disposition: Disposition = Disposition.ATTACHMENT
    content_id: Optional[str] = None
    transfer_encoding: TransferEncoding = TransferEncoding.BASE64

    def __post_init__(self):
        if not isinstance(self.transfer_encoding, TransferEncoding):
            self.transfer_encoding = TransferEncoding.from_string(self.transfer_encoding)
        if not isinstance(self.disposition, Disposition):
            self.disposition = Disposition(self.disposition.strip().lower())

    @classmethod
    def from_path(
        cls,
        path: Path | str,
        content_type: Optional[str] = None,
        disposition: Disposition = Disposition.ATTACHMENT,
        content_id: Optional[str] = None,
    ) -> "Attachment":
        """Read an attachment from disk, guessing its MIME type from the name."""
        path = Path(path)
        try:
            content = path.read_bytes()
        except OSError as e:
            raise AttachmentNotFoundError(
                f"Cannot read attachment: {path}", details={"path": str(path)}
            ) from e

        if content_type is None:
            guessed, encoding = mimetypes.guess_type(path.name)
            content_type = guessed if guessed and not encoding else "application/octet-stream"

        return cls(
            filename=path.name,
            content=content,
            content_type=content_type,
            disposition=disposition,
            content_id=content_id,
        )


@dataclass
class Message:
    """Electronic mail message value, built complete before serialization.

    Only ``message_id`` changes after construction: the serializer fills it
    in on first use and reuses it afterwards.
    """

    sender: str
    to: List[str] = field(default_factory=list)
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    authors: List[str] = field(default_factory=list)
    reply_to: List[str] = field(default_factory=list)
    subject: str = ""
    message_id: str = ""
    in_reply_to: List[str] = field(default_factory=list)
    references: List[str] = field(default_factory=list)
    comments: str = ""
    keywords: List[str] = field(default_factory=list)
    importance: Optional[Importance] = None
    priority: Optional[Priority] = None
    sensitivity: Optional[Sensitivity] = None
    date: Optional[datetime] = None
    body: Optional[Part] = None
    parts: List[Part] = field(default_factory=list)
    attachments: List[Attachment] = field(default_factory=list)
    multipart_subtype: str = "mixed"
    extra_headers: List[Tuple[str, str]] = field(default_factory=list)

    def has_recipients(self) -> bool:
        """Check if at least one recipient is set."""
        return bool(self.to or self.cc or self.bcc)

    def is_multipart(self) -> bool:
        """Check if the message needs a multipart body."""
        return bool(self.parts or self.attachments)

    def envelope_recipients(self) -> List[str]:
        """Get to + cc + bcc in order, without duplicates."""
        seen = set()
        recipients = []

        for address in [*self.to, *self.cc, *self.bcc]:
            if address not in seen:
                seen.add(address)
                recipients.append(address)

        return recipients

    def copy(self) -> "Message":
        """Deep copy, for serializing logically-equal messages concurrently."""
        return copy.deepcopy(self)
