"""Serialize a Message into the RFC 5322 byte stream handed to a transport."""

from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Callable, List, Optional

from mimecraft.core.models.message import Message
from mimecraft.core.transport.sink import ByteSink
from mimecraft.core.validation.message import MessageValidator
from mimecraft.utils.config_manager import MimeConfig
from mimecraft.utils.logging import get_logger

from .body import BodyEncoder
from .constants import CRLF_BYTES, Defaults
from .headers import HeaderEncoder
from .identifiers import IdentifierGenerator, RandomSource
from .multipart import MultipartAssembler

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).astimezone()


class MessageSerializer:
    """Turns a Message into the bytes of a complete RFC 5322 message.

    Header order is fixed: Date, From, Sender, Reply-To, To, Cc,
    Message-ID, In-Reply-To, References, Subject, Comments, Keywords,
    Importance, Priority, Sensitivity, extra headers, then the MIME
    headers. Bcc recipients are envelope-only and never written. Fields
    that are empty are left out.

    The only side effect is assigning ``message.message_id`` the first
    time a message without one is serialized.
    """

    def __init__(
        self,
        header_encoder: Optional[HeaderEncoder] = None,
        body_encoder: Optional[BodyEncoder] = None,
        identifier_generator: Optional[IdentifierGenerator] = None,
        multipart_assembler: Optional[MultipartAssembler] = None,
        clock: Callable[[], datetime] = _now,
    ):
        self.header_encoder = header_encoder or HeaderEncoder()
        self.body_encoder = body_encoder or BodyEncoder()
        self.identifier_generator = identifier_generator or IdentifierGenerator()
        self.multipart_assembler = multipart_assembler or MultipartAssembler(
            header_encoder=self.header_encoder,
            body_encoder=self.body_encoder,
            random_source=self.identifier_generator.random_source,
        )
        self._clock = clock

    @classmethod
    def from_config(
        cls, config: MimeConfig, random_source: Optional[RandomSource] = None
    ) -> "MessageSerializer":
        """Build a serializer from the ``mime`` configuration section."""
        header_encoder = HeaderEncoder(
            charset=config.charset,
            max_line_length=config.max_header_line,
            address_separator=config.address_separator,
        )
        body_encoder = BodyEncoder()
        identifiers = IdentifierGenerator(
            random_source=random_source, domain=config.message_id_domain
        )
        assembler = MultipartAssembler(
            header_encoder=header_encoder,
            body_encoder=body_encoder,
            random_source=identifiers.random_source,
            max_attempts=config.boundary_max_attempts,
            token_bytes=config.boundary_token_bytes,
        )
        return cls(header_encoder, body_encoder, identifiers, assembler)

    def serialize(self, message: Message) -> bytes:
        """Serialize a message to bytes.

        Everything is encoded before anything is returned, so a failure
        leaves no partial output. The identifier is only stored on the
        message once the whole message has been built.

        Raises:
            MissingRequiredFieldError: If sender or recipients are missing
            HeaderInjectionError: If a header name or value has CR or LF
            NonASCIIContentError: If 7bit content is not 7bit clean
            BoundaryCollisionError: If no safe multipart boundary was found
            RandomnessUnavailableError: If the secure random source fails
        """
        MessageValidator.validate(message)

        message_id = message.message_id or self.identifier_generator.generate()
        headers = self._headers(message, message_id)
        mime_headers, body = self._body(message)

        data = b"".join(headers) + b"".join(mime_headers) + CRLF_BYTES + body

        if not message.message_id:
            message.message_id = message_id
            logger.debug(f"Assigned Message-ID {message_id}")

        return data

    def write_to(self, message: Message, sink: ByteSink) -> int:
        """Serialize a message and append the bytes to a sink.

        Returns:
            Number of bytes written
        """
        data = self.serialize(message)
        sink.write(data)
        return len(data)

    def _headers(self, message: Message, message_id: str) -> List[bytes]:
        encoder = self.header_encoder
        authors = message.authors or [message.sender]
        lines = [encoder.format_field("Date", format_datetime(message.date or self._clock()))]

        lines.append(encoder.format_addresses("From", authors))
        if authors != [message.sender]:
            lines.append(encoder.format_addresses("Sender", [message.sender]))
        if message.reply_to:
            lines.append(encoder.format_addresses("Reply-To", message.reply_to))
        if message.to:
            lines.append(encoder.format_addresses("To", message.to))
        if message.cc:
            lines.append(encoder.format_addresses("Cc", message.cc))

        lines.append(encoder.format_field("Message-ID", message_id))
        if message.in_reply_to:
            lines.append(encoder.format_list("In-Reply-To", message.in_reply_to, separator=""))
        if message.references:
            lines.append(encoder.format_list("References", message.references, separator=""))
        if message.subject.strip(" \t"):
            lines.append(encoder.format_field("Subject", message.subject))
        if message.comments.strip(" \t"):
            lines.append(encoder.format_field("Comments", message.comments))
        if message.keywords:
            lines.append(encoder.format_list("Keywords", message.keywords))

        for name, enum_value in (
            ("Importance", message.importance),
            ("Priority", message.priority),
            ("Sensitivity", message.sensitivity),
        ):
            if enum_value is not None:
                lines.append(encoder.format_field(name, enum_value.value))

        for name, value in message.extra_headers:
            lines.append(encoder.format_field(name.strip(), value))

        return lines

    def _body(self, message: Message) -> tuple[List[bytes], bytes]:
        encoder = self.header_encoder
        mime_headers = [encoder.format_field("MIME-Version", Defaults.MIME_VERSION)]

        if message.is_multipart():
            parts = ([message.body] if message.body else []) + list(message.parts)
            assembled = self.multipart_assembler.assemble(
                parts, message.attachments, message.multipart_subtype
            )
            mime_headers.append(
                encoder.format_parameterized(
                    "Content-Type", assembled.content_type, [("boundary", assembled.boundary)]
                )
            )
            return mime_headers, assembled.body

        if message.body is None:
            return mime_headers, b""

        part = message.body
        mime_headers.append(
            encoder.format_parameterized("Content-Type", part.content_type, [("charset", part.charset)])
        )
        mime_headers.append(
            encoder.format_field("Content-Transfer-Encoding", part.transfer_encoding.value)
        )
        return mime_headers, self.body_encoder.encode(part.content, part.transfer_encoding)


def serialize(message: Message) -> bytes:
    """Serialize a message with default settings."""
    return MessageSerializer().serialize(message)
