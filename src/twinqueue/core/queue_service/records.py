"""Line encoding of messages for the file backend.

One message per line::

    <receipt_token>,<visible_at>,<base64 body>

The token is empty for a message that was never pulled. The body is base64
encoded so newlines, commas and arbitrary bytes never break line framing.
"""

from __future__ import annotations

import base64
import binascii

from twinqueue.core.dto.message_dto import Message
from twinqueue.core.queue_service.errors import CorruptRecordError

FIELD_SEPARATOR = ","


def encode_record(message: Message) -> str:
    """Return the record line for ``message``, without a trailing newline."""
    token = message.receipt_token or ""
    body = base64.b64encode(message.body).decode("ascii")
    return f"{token}{FIELD_SEPARATOR}{message.visible_at}{FIELD_SEPARATOR}{body}"


def decode_record(line: str) -> Message:
    """Parse a record line (a trailing newline is tolerated)."""
    raw = line.rstrip("\n")
    parts = raw.split(FIELD_SEPARATOR, 2)
    if len(parts) != 3:
        raise CorruptRecordError(raw)
    token, visible_at, body = parts
    try:
        return Message(
            body=base64.b64decode(body, validate=True),
            receipt_token=token or None,
            visible_at=int(visible_at),
        )
    except (binascii.Error, ValueError) as exc:
        raise CorruptRecordError(raw, exc) from exc


def read_token(line: str) -> str | None:
    """Return the receipt token of a record line without decoding the body."""
    token, sep, _ = line.partition(FIELD_SEPARATOR)
    if not sep:
        raise CorruptRecordError(line.rstrip("\n"))
    return token or None
