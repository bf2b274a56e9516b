"""
Tests for SMTP delivery

Tests cover:
- Envelope construction
- Retry of transient failures
- Permanent failures and timeouts
"""
import aiosmtplib
import pytest

from mimecraft.core.transport.smtp import SMTPTransport
from mimecraft.utils.config_manager import SMTPConfig
from mimecraft.utils.errors import MissingRequiredFieldError, NetworkTimeoutError, SMTPError
from test_helpers import MessageTestHelper


class FakeSMTP:
    """Stand-in for aiosmtplib.SMTP that replays scripted outcomes."""

    def __init__(self, factory, **kwargs):
        self.factory = factory
        self.kwargs = kwargs

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def sendmail(self, sender, recipients, message):
        self.factory.calls.append((sender, list(recipients), message))
        outcome = self.factory.outcomes.pop(0) if self.factory.outcomes else None
        if isinstance(outcome, Exception):
            raise outcome
        return outcome or {}, "250 OK"


class FakeSMTPFactory:
    """Callable used as client_factory; records every connection."""

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.calls = []
        self.clients = []

    def __call__(self, **kwargs):
        client = FakeSMTP(self, **kwargs)
        self.clients.append(client)
        return client


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def sleep():
    return RecordingSleep()


def make_transport(serializer, factory, sleep, **config):
    return SMTPTransport(SMTPConfig(**config), serializer, client_factory=factory, sleep=sleep)


class TestSend:
    """Tests for successful delivery"""

    async def test_envelope_and_data(self, serializer, sleep):
        """Test the envelope includes Bcc while the data does not"""
        factory = FakeSMTPFactory()
        transport = make_transport(serializer, factory, sleep, host="relay.test", port=2525)
        message = MessageTestHelper.create_message(
            cc=["carol@example.com"], bcc=["hidden@example.com"]
        )

        result = await transport.send(message)

        sender, recipients, data = factory.calls[0]
        assert sender == "alice@example.com"
        assert recipients == ["bob@example.com", "carol@example.com", "hidden@example.com"]
        assert b"hidden@example.com" not in data
        assert result.message_id == message.message_id
        assert result.attempts == 1
        assert result.size_bytes == len(data)
        assert factory.clients[0].kwargs["hostname"] == "relay.test"
        assert factory.clients[0].kwargs["port"] == 2525
        assert factory.clients[0].kwargs["start_tls"] is False

    async def test_refused_recipients_reported(self, serializer, sleep):
        """Test per-recipient refusals are returned"""
        refusal = aiosmtplib.SMTPRecipientRefused(550, "No such user", "bob@example.com")
        factory = FakeSMTPFactory(outcomes=[{"bob@example.com": refusal}])
        transport = make_transport(serializer, factory, sleep)

        result = await transport.send(
            MessageTestHelper.create_message(cc=["carol@example.com"])
        )

        assert list(result.refused) == ["bob@example.com"]

    async def test_invalid_message_not_sent(self, serializer, sleep):
        """Test validation errors surface before any connection is made"""
        factory = FakeSMTPFactory()
        transport = make_transport(serializer, factory, sleep)

        with pytest.raises(MissingRequiredFieldError):
            await transport.send(MessageTestHelper.create_message(to=[]))
        assert factory.clients == []


class TestRetries:
    """Tests for transient failure handling"""

    async def test_transient_reply_retried(self, serializer, sleep):
        """Test a 421 reply is retried after a backoff"""
        factory = FakeSMTPFactory(
            outcomes=[aiosmtplib.SMTPResponseException(421, "Service not available")]
        )
        transport = make_transport(serializer, factory, sleep)

        result = await transport.send(MessageTestHelper.create_message())

        assert result.attempts == 2
        assert sleep.delays == [1.0]

    async def test_disconnect_backoff_doubles(self, serializer, sleep):
        """Test repeated disconnects back off exponentially"""
        factory = FakeSMTPFactory(
            outcomes=[
                aiosmtplib.SMTPServerDisconnected("gone"),
                aiosmtplib.SMTPServerDisconnected("gone again"),
            ]
        )
        transport = make_transport(serializer, factory, sleep)

        result = await transport.send(MessageTestHelper.create_message())

        assert result.attempts == 3
        assert sleep.delays == [1.0, 2.0]

    async def test_same_bytes_on_every_attempt(self, serializer, sleep):
        """Test retries resend the same serialized message"""
        factory = FakeSMTPFactory(outcomes=[aiosmtplib.SMTPResponseException(451, "Try later")])
        transport = make_transport(serializer, factory, sleep)

        await transport.send(MessageTestHelper.create_message())

        assert factory.calls[0][2] == factory.calls[1][2]

    async def test_retries_exhausted(self, serializer, sleep):
        """Test SMTPError once max_retries is used up"""
        factory = FakeSMTPFactory(
            outcomes=[aiosmtplib.SMTPResponseException(451, "Try later")] * 3
        )
        transport = make_transport(serializer, factory, sleep, max_retries=2)

        with pytest.raises(SMTPError):
            await transport.send(MessageTestHelper.create_message())
        assert sleep.delays == [1.0, 2.0]
        assert len(factory.calls) == 3


class TestFailures:
    """Tests for permanent failures"""

    async def test_permanent_reply_not_retried(self, serializer, sleep):
        """Test a 550 reply fails immediately"""
        factory = FakeSMTPFactory(
            outcomes=[aiosmtplib.SMTPResponseException(550, "Mailbox unavailable")]
        )
        transport = make_transport(serializer, factory, sleep)

        with pytest.raises(SMTPError):
            await transport.send(MessageTestHelper.create_message())
        assert sleep.delays == []

    async def test_timeout(self, serializer, sleep):
        """Test a relay timeout raises NetworkTimeoutError"""
        factory = FakeSMTPFactory(outcomes=[aiosmtplib.SMTPTimeoutError("Timed out")])
        transport = make_transport(serializer, factory, sleep)

        with pytest.raises(NetworkTimeoutError):
            await transport.send(MessageTestHelper.create_message())
