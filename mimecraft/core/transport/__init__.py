"""Delivery of serialized messages.

- ByteSink / BufferSink: destinations for raw message bytes
- smtp.SMTPTransport: hands a message to an SMTP relay

The SMTP transport depends on the serializer, so it is imported from its
own module rather than re-exported here.

Usage
-----
    >>> from mimecraft.core.transport.smtp import SMTPTransport
    >>> from mimecraft.utils.config_manager import ConfigManager
    >>>
    >>> config = ConfigManager().config
    >>> transport = SMTPTransport(config.smtp)
    >>> result = await transport.send(message)
    >>> print(result.message_id, result.attempts)
"""

from .sink import BufferSink, ByteSink

__all__ = [
    "BufferSink",
    "ByteSink",
]
