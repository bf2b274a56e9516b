"""Message validation utilities."""

from mimecraft.core.models.message import Message
from mimecraft.utils.errors import InvalidHeaderNameError, MissingRequiredFieldError

# Fields the serializer writes itself; extra headers may not repeat them.
MANAGED_HEADERS = frozenset(
    name.lower()
    for name in (
        "Date",
        "From",
        "Sender",
        "Reply-To",
        "To",
        "Cc",
        "Bcc",
        "Message-ID",
        "In-Reply-To",
        "References",
        "Subject",
        "Comments",
        "Keywords",
        "Importance",
        "Priority",
        "Sensitivity",
        "MIME-Version",
        "Content-Type",
        "Content-Transfer-Encoding",
        "Content-Disposition",
        "Content-ID",
    )
)


class MessageValidator:
    """Validate a message before it is serialized.

    Address syntax is not checked; mailboxes are carried as given.
    """

    @staticmethod
    def validate(message: Message) -> None:
        """Check the required fields and extension headers of a message.

        Raises:
            MissingRequiredFieldError: If the sender or every recipient is missing
            InvalidHeaderNameError: If an extra header repeats a managed field
        """
        if not message.sender or not message.sender.strip():
            raise MissingRequiredFieldError(
                "Message has no sender", details={"field": "sender"}
            )

        if not message.has_recipients():
            raise MissingRequiredFieldError(
                "Message has no recipients", details={"field": "to/cc/bcc"}
            )

        for name, _ in message.extra_headers:
            if name.strip().lower() in MANAGED_HEADERS:
                raise InvalidHeaderNameError(
                    f"Header {name!r} is written by the serializer and cannot be overridden",
                    details={"field": name},
                )
