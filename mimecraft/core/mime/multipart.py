"""MIME multipart assembly (RFC 2046 section 5.1)."""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from mimecraft.core.models.message import Attachment, Part
from mimecraft.utils.errors import BoundaryCollisionError
from mimecraft.utils.logging import get_logger

from .body import BodyEncoder
from .constants import CRLF_BYTES, Defaults
from .headers import HeaderEncoder
from .identifiers import RandomSource, SystemRandomSource, random_token

logger = get_logger(__name__)

# RFC 2046 limits a boundary to 70 characters
_MAX_TOKEN_BYTES = (70 - len(Defaults.BOUNDARY_PREFIX)) // 2


@dataclass(frozen=True)
class MultipartBody:
    """An assembled multipart body and the boundary that delimits it."""

    subtype: str
    boundary: str
    body: bytes

    @property
    def content_type(self) -> str:
        return f"multipart/{self.subtype}"


class MultipartAssembler:
    """Composes parts and attachments into one multipart body.

    Every segment is encoded first; the boundary is then drawn and checked
    against all of them, and redrawn with a longer token on collision.
    """

    def __init__(
        self,
        header_encoder: Optional[HeaderEncoder] = None,
        body_encoder: Optional[BodyEncoder] = None,
        random_source: Optional[RandomSource] = None,
        max_attempts: int = Defaults.BOUNDARY_MAX_ATTEMPTS,
        token_bytes: int = Defaults.BOUNDARY_TOKEN_BYTES,
    ):
        self.header_encoder = header_encoder or HeaderEncoder()
        self.body_encoder = body_encoder or BodyEncoder()
        self.random_source = random_source or SystemRandomSource()
        self.max_attempts = max_attempts
        self.token_bytes = token_bytes

    def assemble(
        self,
        parts: Sequence[Part],
        attachments: Sequence[Attachment] = (),
        subtype: str = "mixed",
    ) -> MultipartBody:
        """Build the multipart body.

        Args:
            parts: Body parts, in document order
            attachments: Attachments, placed after the parts
            subtype: Declared subtype, used when there are no attachments

        Returns:
            MultipartBody with the subtype, boundary and body bytes

        Raises:
            BoundaryCollisionError: If every boundary drawn occurs in the content
            NonASCIIContentError: If a 7bit segment is not 7bit clean
        """
        if attachments:
            subtype = "mixed"

        segments = [self.part_segment(part) for part in parts]
        segments.extend(self.attachment_segment(attachment) for attachment in attachments)

        boundary = self.choose_boundary(segments)
        delimiter = b"--" + boundary.encode("ascii")

        body = bytearray()
        for segment in segments:
            body += delimiter + CRLF_BYTES + segment + CRLF_BYTES
        body += delimiter + b"--" + CRLF_BYTES

        return MultipartBody(subtype=subtype, boundary=boundary, body=bytes(body))

    def choose_boundary(self, segments: Sequence[bytes]) -> str:
        """Draw a boundary that occurs in none of the segments."""
        for attempt in range(self.max_attempts):
            nbytes = min(
                self.token_bytes + attempt * Defaults.BOUNDARY_TOKEN_GROWTH,
                _MAX_TOKEN_BYTES,
            )
            boundary = Defaults.BOUNDARY_PREFIX + random_token(self.random_source, nbytes)
            encoded = boundary.encode("ascii")

            if not any(encoded in segment for segment in segments):
                return boundary

            logger.debug(f"Boundary collision on attempt {attempt + 1}, regenerating")

        raise BoundaryCollisionError(
            f"Boundary collided with content {self.max_attempts} times",
            details={"attempts": self.max_attempts},
        )

    def part_segment(self, part: Part) -> bytes:
        """Headers, blank line and encoded content for one body part."""
        headers = self._common_headers(
            part.content_type, [("charset", part.charset)], part.transfer_encoding.value
        )
        return headers + CRLF_BYTES + self.body_encoder.encode(
            part.content, part.transfer_encoding
        )

    def attachment_segment(self, attachment: Attachment) -> bytes:
        """Headers, blank line and encoded content for one attachment."""
        filename = attachment.filename or None
        headers = self._common_headers(
            attachment.content_type, [("name", filename)], attachment.transfer_encoding.value
        )
        headers += self.header_encoder.format_parameterized(
            "Content-Disposition", attachment.disposition.value, [("filename", filename)]
        )
        if attachment.content_id:
            content_id = attachment.content_id.strip()
            if not content_id.startswith("<"):
                content_id = f"<{content_id}>"
            headers += self.header_encoder.format_field("Content-ID", content_id)

        return headers + CRLF_BYTES + self.body_encoder.encode(
            attachment.content, attachment.transfer_encoding
        )

    def _common_headers(self, content_type: str, params: List, transfer_encoding: str) -> bytes:
        return self.header_encoder.format_parameterized(
            "Content-Type", content_type, params
        ) + self.header_encoder.format_field("Content-Transfer-Encoding", transfer_encoding)
