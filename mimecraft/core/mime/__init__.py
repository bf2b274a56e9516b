"""MIME message serialization.

Components
----------
- HeaderEncoder: header folding, RFC 2047 encoded words, RFC 2231 parameters
- BodyEncoder: 7bit, quoted-printable and base64 transfer encodings
- MultipartAssembler: multipart bodies with collision-checked boundaries
- IdentifierGenerator: unique Message-ID values
- MessageSerializer: the full message, header order included

Usage
-----
    >>> from mimecraft.core.models import Message, Part
    >>> from mimecraft.core.mime import serialize
    >>>
    >>> message = Message(
    ...     sender="alice@example.com",
    ...     to=["bob@example.com"],
    ...     subject="Héllo",
    ...     body=Part.text("Hi Bob"),
    ... )
    >>> data = serialize(message)
    >>> message.message_id  # assigned on first serialization
"""

from .body import BodyEncoder
from .headers import HeaderEncoder
from .identifiers import IdentifierGenerator, RandomSource, SystemRandomSource
from .multipart import MultipartAssembler, MultipartBody
from .serializer import MessageSerializer, serialize

__all__ = [
    "BodyEncoder",
    "HeaderEncoder",
    "IdentifierGenerator",
    "MessageSerializer",
    "MultipartAssembler",
    "MultipartBody",
    "RandomSource",
    "SystemRandomSource",
    "serialize",
]
