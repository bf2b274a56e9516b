"""Command-line entry point: build a message to a file or send it over SMTP."""

import argparse
import asyncio
import sys
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from mimecraft.core.mime.serializer import MessageSerializer
from mimecraft.core.models.message import (
    Attachment,
    Importance,
    Message,
    Part,
    Priority,
    Sensitivity,
)
from mimecraft.core.transport.smtp import SMTPTransport
from mimecraft.utils.config_manager import AppConfig, ConfigManager
from mimecraft.utils.console import get_console, print_error, print_status, print_success
from mimecraft.utils.errors import ErrorHandler, MimecraftError, format_error_message
from mimecraft.utils.logging import async_log_call, get_logger, init_logging

logger = get_logger(__name__)


## Argument Adding Utilities

def add_message_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the options that describe a message."""

    address_group = parser.add_argument_group("addresses")
    address_group.add_argument("--from", dest="sender", required=True, help="Sender mailbox")
    address_group.add_argument(
        "--to", action="append", default=[], help="Primary recipient (repeatable)"
    )
    address_group.add_argument(
        "--cc", action="append", default=[], help="Carbon-copy recipient (repeatable)"
    )
    address_group.add_argument(
        "--bcc", action="append", default=[], help="Blind-copy recipient, envelope only (repeatable)"
    )
    address_group.add_argument(
        "--reply-to", action="append", default=[], help="Reply-To mailbox (repeatable)"
    )

    content_group = parser.add_argument_group("content")
    content_group.add_argument("--subject", default="", help="Subject line")
    content_group.add_argument("--text", help="Plain text body")
    content_group.add_argument("--html", help="HTML body")
    content_group.add_argument(
        "--alternative",
        action="store_true",
        help="Send --text and --html as multipart/alternative renderings",
    )
    content_group.add_argument(
        "--attach", action="append", default=[], metavar="PATH", help="File to attach (repeatable)"
    )

    header_group = parser.add_argument_group("headers")
    header_group.add_argument(
        "--importance", choices=[i.value for i in Importance], help="Importance header"
    )
    header_group.add_argument(
        "--priority", choices=[p.value for p in Priority], help="Priority header"
    )
    header_group.add_argument(
        "--sensitivity", choices=[s.value for s in Sensitivity], help="Sensitivity header"
    )
    header_group.add_argument(
        "--header",
        action="append",
        default=[],
        metavar="NAME:VALUE",
        help="Additional header (repeatable)",
    )


def setup_argument_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with the build and send commands."""

    parser = argparse.ArgumentParser(
        prog="mimecraft",
        description="Build RFC 5322 messages and send them over SMTP.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Serialize a message",
        description="Serialize a message to a file or standard output",
    )
    add_message_arguments(build_parser)
    build_parser.add_argument(
        "--output", "-o", help="Destination file (default: standard output)"
    )

    send_parser = subparsers.add_parser(
        "send",
        help="Send a message",
        description="Serialize a message and deliver it to an SMTP relay",
    )
    add_message_arguments(send_parser)
    send_parser.add_argument("--host", help="Relay host (overrides configuration)")
    send_parser.add_argument("--port", type=int, help="Relay port (overrides configuration)")

    return parser


## Message Construction

def _parse_header(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Header must look like NAME:VALUE, got {raw!r}")
    return name.strip(), value.strip()


def build_message(args: argparse.Namespace, charset: str = "utf-8") -> Message:
    """Turn parsed arguments into a Message.

    A lone --text or --html becomes the single body. Both together become
    two parts, multipart/alternative when --alternative is given and
    multipart/mixed otherwise. Attachments always force multipart/mixed.
    """

    message = Message(
        sender=args.sender,
        to=list(args.to),
        cc=list(args.cc),
        bcc=list(args.bcc),
        reply_to=list(args.reply_to),
        subject=args.subject,
        importance=Importance(args.importance) if args.importance else None,
        priority=Priority(args.priority) if args.priority else None,
        sensitivity=Sensitivity(args.sensitivity) if args.sensitivity else None,
        extra_headers=[_parse_header(raw) for raw in args.header],
    )

    contents: List[Part] = []
    if args.text is not None:
        contents.append(Part.text(args.text, charset=charset))
    if args.html is not None:
        contents.append(Part.html(args.html, charset=charset))

    if len(contents) == 1:
        message.body = contents[0]
    elif contents:
        message.parts = contents
        message.multipart_subtype = "alternative" if args.alternative else "mixed"

    message.attachments = [Attachment.from_path(path) for path in args.attach]
    return message


## Command Handlers

async def handle_build(
    args: argparse.Namespace, serializer: MessageSerializer, console: Console
) -> int:
    """Serialize the message to --output or standard output."""

    message = build_message(args, serializer.header_encoder.charset)

    if args.output:
        data = serializer.serialize(message)
        with open(args.output, "wb") as f:
            f.write(data)
        size = len(data)
        print_success(f"Wrote {size} bytes to {escape(args.output)}", console)
    else:
        size = serializer.write_to(message, sys.stdout.buffer)
        sys.stdout.buffer.flush()

    print_status(f"Message-ID {escape(message.message_id)}", console)
    logger.info(f"Built message {message.message_id} ({size} bytes)")
    return 0


async def handle_send(
    args: argparse.Namespace,
    config: AppConfig,
    serializer: MessageSerializer,
    console: Console,
) -> int:
    """Deliver the message to the configured relay."""

    overrides = {}
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    smtp_config = config.smtp.model_copy(update=overrides)

    message = build_message(args, serializer.header_encoder.charset)
    transport = SMTPTransport(smtp_config, serializer)

    print_status(f"Sending via {smtp_config.host}:{smtp_config.port}...", console)
    result = await transport.send(message)

    print_success(
        f"Sent {escape(result.message_id)} to {len(result.recipients)} recipient(s)",
        console,
    )
    for address, reply in result.refused.items():
        print_error(f"Refused {escape(address)}: {escape(reply)}", console)

    return 0


@async_log_call
async def dispatch_command(
    args: argparse.Namespace, config: AppConfig, console: Console
) -> int:
    """Dispatch a parsed command.

    Returns:
        Exit code (0 = success, 1 = error)
    """

    serializer = MessageSerializer.from_config(config.mime)

    try:
        if args.command == "build":
            return await handle_build(args, serializer, console)
        if args.command == "send":
            return await handle_send(args, config, serializer, console)
        raise ValueError(f"Unknown command: {args.command}")

    except MimecraftError as e:
        ErrorHandler.handle(e, context=args.command, log_traceback=False)
        print_error(f"Error: {escape(format_error_message(e))}", console)
        return 1

    except (ValueError, argparse.ArgumentTypeError) as e:
        logger.info(f"Invalid command: {e}")
        print_error(f"Error: {escape(str(e))}", console)
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code
    """
    console = get_console()
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    try:
        try:
            config = ConfigManager().config
        except MimecraftError as e:
            ErrorHandler.handle(e, context="config", log_traceback=False)
            print_error(f"Configuration error: {escape(format_error_message(e))}", console)
            return 1

        init_logging().set_level(config.logging.log_level)
        return asyncio.run(dispatch_command(args, config, console))

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
