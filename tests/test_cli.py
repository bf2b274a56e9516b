"""
Tests for CLI command processing and argument handling

Tests cover:
- Argument parsing
- Message construction from options
- build and send commands
- Error handling
"""
from unittest.mock import AsyncMock, patch

import pytest

from mimecraft.cli import build_message, main, setup_argument_parser
from mimecraft.core.transport.smtp import SendResult
from mimecraft.utils.console import reset_console
from test_helpers import MessageTestHelper

BASE_ARGS = ["--from", "alice@example.com", "--to", "bob@example.com", "--subject", "Hi"]


@pytest.fixture(autouse=True)
def fresh_console():
    reset_console()
    yield
    reset_console()


def parse(*extra, command="build"):
    return setup_argument_parser().parse_args([command, *BASE_ARGS, *extra])


class TestArgumentParsing:
    """Tests for the argument parser"""

    def test_command_required(self):
        """Test a subcommand must be given"""
        with pytest.raises(SystemExit):
            setup_argument_parser().parse_args([])

    def test_sender_required(self):
        """Test --from is mandatory"""
        with pytest.raises(SystemExit):
            setup_argument_parser().parse_args(["build", "--to", "bob@example.com"])

    def test_repeatable_recipients(self):
        """Test recipient options accumulate"""
        args = parse("--to", "carol@example.com", "--bcc", "dave@example.com")

        assert args.to == ["bob@example.com", "carol@example.com"]
        assert args.bcc == ["dave@example.com"]


class TestBuildMessage:
    """Tests for turning options into a Message"""

    def test_text_only_is_single_body(self):
        """Test a lone --text becomes the body"""
        message = build_message(parse("--text", "Hello"))

        assert message.body.content_type == "text/plain"
        assert message.parts == []

    def test_text_and_html_alternative(self):
        """Test --alternative makes text and html alternatives"""
        message = build_message(parse("--text", "Hello", "--html", "<p>Hello</p>", "--alternative"))

        assert [part.content_type for part in message.parts] == ["text/plain", "text/html"]
        assert message.multipart_subtype == "alternative"

    def test_text_and_html_mixed_by_default(self):
        """Test text and html without --alternative are mixed parts"""
        message = build_message(parse("--text", "Hello", "--html", "<p>Hello</p>"))
        assert message.multipart_subtype == "mixed"

    def test_attachment_read_from_disk(self, tmp_path):
        """Test --attach loads the file and guesses its type"""
        path = tmp_path / "notes.txt"
        path.write_bytes(b"remember")
        message = build_message(parse("--attach", str(path)))

        assert message.attachments[0].filename == "notes.txt"
        assert message.attachments[0].content_type == "text/plain"
        assert message.attachments[0].content == b"remember"

    def test_extra_headers_and_flags(self):
        """Test --header and header flags are carried over"""
        message = build_message(parse("--header", "X-Campaign: spring", "--importance", "high"))

        assert message.extra_headers == [("X-Campaign", "spring")]
        assert message.importance.value == "high"


class TestBuildCommand:
    """Tests for the build command"""

    def test_build_to_file(self, tmp_path):
        """Test the message is written to --output"""
        output = tmp_path / "message.eml"
        code = main(["build", *BASE_ARGS, "--text", "Hello there", "--output", str(output)])

        assert code == 0
        parsed = MessageTestHelper.parse(output.read_bytes())
        assert parsed["Subject"] == "Hi"
        assert parsed.get_content().replace("\r\n", "\n") == "Hello there"

    def test_build_to_stdout(self, capsysbinary):
        """Test the message goes to standard output without --output"""
        code = main(["build", *BASE_ARGS, "--text", "Hello"])

        assert code == 0
        out = capsysbinary.readouterr().out
        assert out.startswith(b"Date: ")
        assert b"Subject: Hi\r\n" in out

    def test_missing_attachment(self, tmp_path):
        """Test an unreadable attachment gives exit code 1"""
        code = main(["build", *BASE_ARGS, "--attach", str(tmp_path / "missing.pdf"), "--output", str(tmp_path / "m.eml")])
        assert code == 1

    def test_missing_recipients(self, tmp_path):
        """Test a message without recipients gives exit code 1"""
        code = main(["build", "--from", "alice@example.com", "--output", str(tmp_path / "m.eml")])
        assert code == 1

    def test_malformed_header(self, tmp_path):
        """Test a --header without a colon gives exit code 1"""
        code = main(["build", *BASE_ARGS, "--header", "NoColon", "--output", str(tmp_path / "m.eml")])
        assert code == 1

    def test_failed_build_keeps_existing_output(self, tmp_path):
        """Test a serialization error leaves the --output file untouched"""
        output = tmp_path / "message.eml"
        output.write_bytes(b"previous good message")

        code = main(["build", *BASE_ARGS, "--header", "Date:now", "--output", str(output)])

        assert code == 1
        assert output.read_bytes() == b"previous good message"

    def test_failed_build_without_existing_output(self, tmp_path):
        """Test a serialization error does not create the --output file"""
        output = tmp_path / "message.eml"
        code = main(["build", *BASE_ARGS, "--header", "Bcc:x@y.z", "--output", str(output)])

        assert code == 1
        assert not output.exists()

    def test_error_reported_once(self, tmp_path, capsys):
        """Test a validation error is shown once and without a traceback"""
        code = main(["build", "--from", "alice@example.com", "--output", str(tmp_path / "m.eml")])

        captured = capsys.readouterr()
        output = captured.out + captured.err
        assert code == 1
        assert output.count("Message has no recipients") == 1
        assert "Traceback" not in output


class TestSendCommand:
    """Tests for the send command"""

    def test_send_uses_overrides(self):
        """Test --host and --port override the configured relay"""
        result = SendResult(message_id="<id@test>", recipients=["bob@example.com"], size_bytes=100)

        with patch("mimecraft.cli.SMTPTransport") as mock_transport:
            mock_transport.return_value.send = AsyncMock(return_value=result)
            code = main(["send", *BASE_ARGS, "--text", "Hello", "--host", "relay.test", "--port", "2525"])

        assert code == 0
        smtp_config = mock_transport.call_args[0][0]
        assert smtp_config.host == "relay.test"
        assert smtp_config.port == 2525
        mock_transport.return_value.send.assert_awaited_once()

    def test_send_failure_exit_code(self):
        """Test delivery errors give exit code 1"""
        from mimecraft.utils.errors import SMTPError

        with patch("mimecraft.cli.SMTPTransport") as mock_transport:
            mock_transport.return_value.send = AsyncMock(side_effect=SMTPError("relay said no"))
            code = main(["send", *BASE_ARGS, "--text", "Hello"])

        assert code == 1
