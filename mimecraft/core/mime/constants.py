"""Line limits and header tables for message construction.

Values come from RFC 5322 (message format), RFC 2045 (MIME bodies) and
RFC 2047 (encoded words). Limits are in characters, excluding CRLF
unless noted.
"""

CRLF = "\r\n"
CRLF_BYTES = b"\r\n"


class LineLimits:
    """Line length limits."""

    HEADER_SOFT = 78  # RFC 5322 2.1.1 recommended maximum
    HARD = 998  # RFC 5322 2.1.1 absolute maximum, excluding CRLF
    ENCODED_WORD = 75  # RFC 2047 2
    QUOTED_PRINTABLE = 76  # RFC 2045 6.7 rule 5
    BASE64 = 76  # RFC 2045 6.8
    PARAMETER_SEGMENT = 60  # RFC 2231 continuation chunk size


class Defaults:
    """Defaults used when nothing is configured."""

    CHARSET = "utf-8"
    ADDRESS_SEPARATOR = ";"
    BOUNDARY_PREFIX = "=_"
    BOUNDARY_TOKEN_BYTES = 16
    BOUNDARY_TOKEN_GROWTH = 8  # extra random bytes per regeneration
    BOUNDARY_MAX_ATTEMPTS = 5
    PLACEHOLDER_DOMAIN = "localhost.localdomain"
    MIME_VERSION = "1.0"
