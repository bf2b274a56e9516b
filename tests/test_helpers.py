"""
Test helper functions for inspecting serialized messages
"""
import email
import email.header
import email.policy
import re

from mimecraft.core.models.message import Message


class MessageTestHelper:
    """Helper methods for building and reading messages"""

    @staticmethod
    def create_message(**kwargs):
        """Create a Message with default sender and recipient"""
        defaults = {
            "sender": "alice@example.com",
            "to": ["bob@example.com"],
            "subject": "Test Subject",
        }
        defaults.update(kwargs)
        return Message(**defaults)

    @staticmethod
    def split(data):
        """Split serialized bytes into (header block, body)"""
        head, _, body = data.partition(b"\r\n\r\n")
        return head, body

    @staticmethod
    def header_fields(data):
        """Unfolded (name, value) pairs from the header block, in order"""
        head, _ = MessageTestHelper.split(data)
        unfolded = re.sub(rb"\r\n(?=[ \t])", b"", head).decode("ascii")
        return [tuple(line.split(": ", 1)) for line in unfolded.split("\r\n")]

    @staticmethod
    def header_names(data):
        """Header field names in order"""
        return [name for name, _ in MessageTestHelper.header_fields(data)]

    @staticmethod
    def parse(data):
        """Parse serialized bytes with the standard library"""
        return email.message_from_bytes(data, policy=email.policy.default)

    @staticmethod
    def decode_header(name, folded_value):
        """Decode a folded header value the way a mail reader would"""
        unfolded = re.sub(r"\r\n(?=[ \t])", "", folded_value)
        return str(email.policy.default.header_factory(name, unfolded))

    @staticmethod
    def decode_word(word):
        """Decode a single RFC 2047 encoded word"""
        (data, charset), = email.header.decode_header(word)
        return data.decode(charset)
