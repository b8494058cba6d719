"""Example entry point that builds a message and sends it through SER."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
import sys

from dotenv import load_dotenv

# Ensure project root is on sys.path when running as a script
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from ser_mail_api import Attachment, Client, ContentType, Message, SerMailError, Settings

load_dotenv()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send an email through the Proofpoint SER mail API.")
    parser.add_argument("--from", dest="sender", required=True, help="Envelope sender address")
    parser.add_argument("--from-name", help="Display name for the sender")
    parser.add_argument("--header-from", help="Address shown in the From header, if different")
    parser.add_argument("--to", action="append", required=True, help="Recipient (repeatable)")
    parser.add_argument("--cc", action="append", default=[], help="CC recipient (repeatable)")
    parser.add_argument("--bcc", action="append", default=[], help="BCC recipient (repeatable)")
    parser.add_argument("--reply-to", action="append", default=[], help="Reply-To address (repeatable)")
    parser.add_argument("--subject", required=True)
    parser.add_argument("--text", help="Plain text body")
    parser.add_argument("--html", help="HTML body")
    parser.add_argument("--attach", action="append", type=Path, default=[], help="File to attach (repeatable)")
    parser.add_argument(
        "--inline", action="append", type=Path, default=[], help="File to embed inline (repeatable)"
    )
    parser.add_argument("--dry-run", action="store_true", help="Print the JSON payload without sending")
    return parser


def build_message(args: argparse.Namespace) -> Message:
    if not args.text and not args.html:
        raise SystemExit("Provide --text and/or --html.")

    builder = Message.builder().sender(args.sender, args.from_name).subject(args.subject)
    if args.header_from:
        builder.header_from(args.header_from)
    for address in args.to:
        builder.to(address)
    for address in args.cc:
        builder.cc(address)
    for address in args.bcc:
        builder.bcc(address)
    for address in args.reply_to:
        builder.reply_to(address)
    if args.text:
        builder.content(args.text, ContentType.TEXT)
    if args.html:
        builder.content(args.html, ContentType.HTML)
    for path in args.attach:
        builder.attachment(Attachment.builder().from_file(path).build())
    for path in args.inline:
        attachment = Attachment.builder().from_file(path).disposition_inline().build()
        logging.info("Inline attachment %s is available as cid:%s", path.name, attachment.content_id)
        builder.attachment(attachment)
    return builder.build()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


async def send(settings: Settings, message: Message) -> int:
    async with Client.from_settings(settings) as client:
        try:
            result = await client.send(message)
        except SerMailError:
            logging.exception("Send failed")
            return 1

    logging.info(
        "Status=%s message_id=%s reason=%s request_id=%s",
        result.status_code,
        result.message_id,
        result.reason,
        result.request_id,
    )
    logging.debug("Raw response: %s", result.raw_json)
    return 0 if result.ok else 1


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.dry_run:
        configure_logging("INFO")
        print(build_message(args).to_json())
        return

    settings = Settings()
    configure_logging(settings.log_level)
    message = build_message(args)
    raise SystemExit(asyncio.run(send(settings, message)))


if __name__ == "__main__":
    main()
