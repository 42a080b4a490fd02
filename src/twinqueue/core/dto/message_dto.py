"""Message record moved through a queue.

Messages are immutable. State changes go through ``claim`` and
``refresh_visibility``, which return new instances, so a receipt token is
only ever present on a message that has been pulled.
"""

from typing import Self

from pydantic import BaseModel, Field


class Message(BaseModel):
    """A single queue message.

    Attributes:
        body: Opaque payload bytes.
        receipt_token: Identifier assigned on the first pull. Required to delete.
        visible_at: Millisecond timestamp after which the message may be
            redelivered. Meaningless until the message has been claimed.

    Example:
        >>> msg = Message(body=b"hello")
        >>> claimed = msg.claim("token-1", now=1000, timeout=500)
        >>> claimed.visible_at
        1500
    """

    body: bytes = Field(description="Message payload")
    receipt_token: str | None = Field(default=None, description="Receipt token (None if never pulled)")
    visible_at: int = Field(default=0, description="Redelivery timestamp in milliseconds")

    model_config = {"frozen": True, "extra": "forbid"}

    @property
    def text(self) -> str:
        """Body decoded as UTF-8."""
        return self.body.decode("utf-8")

    @property
    def is_claimed(self) -> bool:
        return self.receipt_token is not None

    def is_visible(self, now: int) -> bool:
        """Return True once the visibility timeout has elapsed at ``now``."""
        return now >= self.visible_at

    def claim(self, token: str, *, now: int, timeout: int) -> Self:
        """Assign a receipt token and start the visibility timeout."""
        if self.is_claimed:
            raise ValueError("Message has already been claimed")
        if not token:
            raise ValueError("Receipt token must be a non-empty string")
        return self.model_copy(update={"receipt_token": token, "visible_at": now + timeout})

    def refresh_visibility(self, *, now: int, timeout: int) -> Self:
        """Restart the visibility timeout of a redelivered message."""
        if not self.is_claimed:
            raise ValueError("Only claimed messages can have their visibility refreshed")
        return self.model_copy(update={"visible_at": now + timeout})
