"""
Tests for body transfer encodings

Tests cover:
- 7bit validation
- Quoted-printable line handling
- Base64 line wrapping
"""
import base64
import quopri

import pytest

from mimecraft.core.mime.body import BodyEncoder
from mimecraft.core.models.message import TransferEncoding
from mimecraft.utils.errors import LineTooLongError, NonASCIIContentError


class TestSevenBit:
    """Tests for 7bit passthrough"""

    def test_clean_content_unchanged(self):
        """Test valid 7bit content is returned as is"""
        content = b"Hello\r\nWorld\r\n"
        assert BodyEncoder().encode(content, TransferEncoding.SEVEN_BIT) == content

    @pytest.mark.parametrize("content", [b"caf\xe9", b"nul\x00byte", b"bare\nlf", b"bare\rcr"])
    def test_invalid_bytes_rejected(self, content):
        """Test 8-bit bytes, NUL and bare line breaks are rejected"""
        with pytest.raises(NonASCIIContentError):
            BodyEncoder().encode_7bit(content)

    def test_overlong_line_rejected(self):
        """Test lines over 998 octets are rejected"""
        with pytest.raises(LineTooLongError):
            BodyEncoder().encode_7bit(b"a" * 999)

    def test_line_at_limit_accepted(self):
        """Test a 998 octet line is allowed"""
        content = b"a" * 998 + b"\r\n"
        assert BodyEncoder().encode_7bit(content) == content


class TestQuotedPrintable:
    """Tests for quoted-printable encoding"""

    def test_non_ascii_escaped(self):
        """Test 8-bit bytes become =XX"""
        assert BodyEncoder().encode_quoted_printable("café".encode()) == b"caf=C3=A9"

    def test_equals_sign_escaped(self):
        """Test literal = is escaped"""
        assert BodyEncoder().encode_quoted_printable(b"a=b") == b"a=3Db"

    def test_trailing_whitespace_escaped(self):
        """Test space before a line break is escaped"""
        encoded = BodyEncoder().encode_quoted_printable(b"hello \r\nworld\t")
        assert encoded == b"hello=20\r\nworld=09"

    def test_long_line_soft_breaks(self):
        """Test long lines are wrapped at 76 with soft breaks"""
        content = b"a" * 200
        encoded = BodyEncoder().encode_quoted_printable(content)
        lines = encoded.split(b"\r\n")

        assert len(lines) > 1
        assert all(len(line) <= 76 for line in lines)
        assert all(line.endswith(b"=") for line in lines[:-1])
        assert quopri.decodestring(encoded) == content

    def test_escapes_never_split(self):
        """Test soft breaks fall between escape sequences"""
        content = "é".encode() * 60
        encoded = BodyEncoder().encode_quoted_printable(content)

        for line in encoded.split(b"\r\n"):
            assert len(line) <= 76
            body = line[:-1] if line.endswith(b"=") else line
            assert len(body) % 3 == 0
        assert quopri.decodestring(encoded) == content

    def test_hard_line_breaks_kept(self):
        """Test CRLF in content stays a hard break"""
        encoded = BodyEncoder().encode_quoted_printable(b"one\r\ntwo\r\n")
        assert encoded == b"one\r\ntwo\r\n"


class TestBase64:
    """Tests for base64 encoding"""

    def test_lines_wrapped_at_76(self):
        """Test output lines are 76 characters with CRLF endings"""
        content = bytes(range(256)) * 2
        encoded = BodyEncoder().encode_base64(content)
        lines = encoded.split(b"\r\n")

        assert encoded.endswith(b"\r\n")
        assert all(len(line) == 76 for line in lines[:-2])
        assert 0 < len(lines[-2]) <= 76
        assert base64.b64decode(b"".join(lines)) == content

    def test_empty_content(self):
        """Test empty content encodes to nothing"""
        assert BodyEncoder().encode_base64(b"") == b""


class TestEncodingSelection:
    """Tests for dispatching on the declared encoding"""

    def test_string_encoding_accepted(self):
        """Test encodings can be given by name"""
        assert BodyEncoder().encode(b"hi", "Base64") == b"aGk=\r\n"

    def test_unknown_encoding_rejected(self):
        """Test unsupported encodings raise ValueError"""
        with pytest.raises(ValueError):
            BodyEncoder().encode(b"hi", "8bit")
