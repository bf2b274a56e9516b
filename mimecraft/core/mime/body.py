"""Content-Transfer-Encoding of body parts (RFC 2045 section 6)."""

import base64
import re

from mimecraft.core.models.message import TransferEncoding
from mimecraft.utils.errors import LineTooLongError, NonASCIIContentError

from .constants import CRLF_BYTES, LineLimits

_BARE_CR_OR_LF_RE = re.compile(rb"\r(?!\n)|(?<!\r)\n")

# printable bytes that quoted-printable may leave as they are
_QP_LITERAL = frozenset(range(33, 127)) - {ord("=")}
_QP_WHITESPACE = frozenset(b" \t")


class BodyEncoder:
    """Encodes raw body bytes for a declared transfer encoding.

    Pure and deterministic: the output depends only on the input bytes.
    """

    def encode(self, content: bytes, encoding: TransferEncoding | str) -> bytes:
        """Encode content for the given transfer encoding.

        Args:
            content: Raw body bytes
            encoding: 7bit, quoted-printable or base64

        Returns:
            Encoded bytes, CRLF line endings

        Raises:
            NonASCIIContentError: If 7bit content holds 8-bit, NUL or bare CR/LF bytes
            LineTooLongError: If a 7bit line exceeds 998 octets
        """
        if not isinstance(encoding, TransferEncoding):
            encoding = TransferEncoding.from_string(encoding)

        if encoding is TransferEncoding.SEVEN_BIT:
            return self.encode_7bit(content)
        if encoding is TransferEncoding.QUOTED_PRINTABLE:
            return self.encode_quoted_printable(content)
        return self.encode_base64(content)

    @staticmethod
    def encode_7bit(content: bytes) -> bytes:
        """Pass content through after checking it is valid 7bit data."""
        for offset, byte in enumerate(content):
            if byte >= 0x80 or byte == 0x00:
                raise NonASCIIContentError(
                    f"Byte 0x{byte:02X} at offset {offset} is not allowed in 7bit content",
                    details={"offset": offset, "byte": byte},
                )

        bare = _BARE_CR_OR_LF_RE.search(content)
        if bare:
            raise NonASCIIContentError(
                f"Bare CR or LF at offset {bare.start()} is not allowed in 7bit content",
                details={"offset": bare.start()},
            )

        for number, line in enumerate(content.split(CRLF_BYTES), 1):
            if len(line) > LineLimits.HARD:
                raise LineTooLongError(
                    f"Line {number} is {len(line)} octets long",
                    details={"line_number": number, "length": len(line)},
                )

        return content

    @staticmethod
    def encode_quoted_printable(content: bytes) -> bytes:
        """Quoted-printable encode, keeping CRLF as hard line breaks."""
        out_lines = []

        for line in content.split(CRLF_BYTES):
            tokens = []
            for index, byte in enumerate(line):
                last = index == len(line) - 1
                if byte in _QP_LITERAL or (byte in _QP_WHITESPACE and not last):
                    tokens.append(bytes((byte,)))
                else:
                    tokens.append(b"=%02X" % byte)

            current = b""
            for index, token in enumerate(tokens):
                # the final physical line needs no room for a soft break
                limit = LineLimits.QUOTED_PRINTABLE - (0 if index == len(tokens) - 1 else 1)
                if len(current) + len(token) > limit:
                    out_lines.append(current + b"=")
                    current = b""
                current += token
            out_lines.append(current)

        return CRLF_BYTES.join(out_lines)

    @staticmethod
    def encode_base64(content: bytes) -> bytes:
        """Base64 encode in 76-character lines, each ending with CRLF."""
        encoded = base64.b64encode(content)
        step = LineLimits.BASE64

        return b"".join(
            encoded[start:start + step] + CRLF_BYTES
            for start in range(0, len(encoded), step)
        )
