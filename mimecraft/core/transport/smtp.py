"""SMTP delivery of serialized messages.

The serializer produces the bytes; this module only hands them to a relay
with the envelope taken from the message (sender, and to + cc + bcc as
recipients). Plain connections only: no STARTTLS, no AUTH.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

import aiosmtplib

from mimecraft.core.mime.serializer import MessageSerializer
from mimecraft.core.models.message import Message
from mimecraft.utils.config_manager import SMTPConfig
from mimecraft.utils.errors import NetworkTimeoutError, SMTPError
from mimecraft.utils.logging import get_logger

from .constants import RetryPolicy, TransientErrors


@dataclass
class SendResult:
    """Outcome of one delivery."""

    message_id: str
    recipients: List[str]
    size_bytes: int
    attempts: int = 1
    duration_seconds: float = 0.0
    refused: Dict[str, str] = field(default_factory=dict)


class SMTPTransport:
    """Delivers messages to an SMTP relay with retries for transient errors."""

    def __init__(
        self,
        config: Optional[SMTPConfig] = None,
        serializer: Optional[MessageSerializer] = None,
        client_factory: Optional[Callable[..., aiosmtplib.SMTP]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialise the transport.

        Args:
            config: Relay host, port, timeout and retry settings
            serializer: Serializer used to produce the message bytes
            client_factory: Builds the aiosmtplib client (tests swap it)
            sleep: Awaitable used between retries
        """
        self.config = config or SMTPConfig()
        self.serializer = serializer or MessageSerializer()
        self._client_factory = client_factory or aiosmtplib.SMTP
        self._sleep = sleep

    def _is_transient_error(self, error: Exception) -> bool:
        """Check if an error is transient and worth retrying.

        Args:
            error: Exception instance to check

        Returns:
            True if error is transient, False otherwise
        """
        if isinstance(error, aiosmtplib.SMTPResponseException):
            return TransientErrors.is_transient(error.code)

        if isinstance(error, (aiosmtplib.SMTPServerDisconnected, ConnectionError)):
            return True

        return False

    async def _deliver(self, sender: str, recipients: List[str], data: bytes):
        client = self._client_factory(
            hostname=self.config.host,
            port=self.config.port,
            timeout=self.config.timeout,
            use_tls=False,
            start_tls=False,
        )
        async with client:
            return await client.sendmail(sender, recipients, data)

    async def send(self, message: Message) -> SendResult:
        """Serialize and deliver a message.

        Args:
            message: Message to send; its Message-ID is assigned if missing

        Returns:
            SendResult describing the delivery

        Raises:
            NetworkTimeoutError: If the relay times out
            SMTPError: If delivery fails after retries
        """
        data = self.serializer.serialize(message)
        recipients = message.envelope_recipients()
        log = get_logger(
            __name__,
            message_id=message.message_id,
            relay=f"{self.config.host}:{self.config.port}",
        )

        start = time.time()
        attempt = 0
        log.info(f"Sending message to {len(recipients)} recipient(s)")

        while True:
            try:
                refused, _ = await self._deliver(message.sender, recipients, data)
                duration = time.time() - start

                log.info(f"Message accepted after {attempt + 1} attempt(s)")
                return SendResult(
                    message_id=message.message_id,
                    recipients=recipients,
                    size_bytes=len(data),
                    attempts=attempt + 1,
                    duration_seconds=round(duration, 3),
                    refused={address: str(reply) for address, reply in refused.items()},
                )

            except asyncio.TimeoutError as e:
                raise NetworkTimeoutError(
                    "SMTP send operation timed out",
                    details={"relay": f"{self.config.host}:{self.config.port}"},
                ) from e

            except Exception as e:
                attempt += 1

                if self._is_transient_error(e) and attempt <= self.config.max_retries:
                    delay = min(RetryPolicy.BASE_DELAY * 2 ** (attempt - 1), RetryPolicy.MAX_DELAY)
                    log.warning(f"Transient SMTP error, retrying in {delay}s: {e}")
                    await self._sleep(delay)
                    continue

                raise SMTPError(
                    f"Failed to send message after {attempt} attempt(s): {e}",
                    details={"attempts": attempt},
                ) from e
