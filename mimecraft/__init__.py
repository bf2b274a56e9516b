"""mimecraft: build RFC 5322 / MIME messages and send them over SMTP."""

__version__ = "0.1.0"
