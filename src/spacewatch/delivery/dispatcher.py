"""Dispatcher: pushes rendered payloads to a Telegram chat."""

from __future__ import annotations

import logging

from spacewatch.delivery.telegram import chunk_message, send_messages, send_photo
from spacewatch.errors import DeliveryError
from spacewatch.render.renderer import DispatchPayload

logger = logging.getLogger(__name__)


class TelegramDispatcher:
    """Sends DispatchPayloads through the Telegram Bot API.

    Text payloads longer than one Telegram message are split into chunks
    and sent in order. Image payloads marked ``silent`` are delivered with
    notifications disabled.
    """

    def __init__(self, bot_token: str, *, max_retries: int = 3, parse_mode: str = "") -> None:
        self._bot_token = bot_token
        self._max_retries = max_retries
        self._parse_mode = parse_mode

    def send(self, channel_id: str, payload: DispatchPayload) -> list[int]:
        """Deliver *payload*; return the Telegram message ids.

        Raises DeliveryError (transient or permanent) if Telegram does not
        confirm delivery. For chunked text the error carries how many chunks
        were already posted.
        """
        if payload.kind == "text":
            results = send_messages(
                self._bot_token,
                channel_id,
                chunk_message(str(payload.content)),
                parse_mode=self._parse_mode,
                max_retries=self._max_retries,
            )
        elif payload.kind == "image":
            results = [
                send_photo(
                    self._bot_token,
                    channel_id,
                    bytes(payload.content),
                    filename=payload.filename,
                    caption=payload.caption,
                    disable_notification=payload.silent,
                    max_retries=self._max_retries,
                )
            ]
        else:
            raise DeliveryError(f"Unsupported payload kind '{payload.kind}'", transient=False)

        message_ids = [r.message_id for r in results if r.ok and r.message_id is not None]
        failed = next((r for r in results if not r.ok), None)
        if failed is not None:
            raise DeliveryError(
                failed.error or "Telegram delivery failed",
                transient=failed.retryable,
                delivered=len(message_ids),
            )
        return message_ids

    def send_alert(self, channel_id: str, message: str) -> None:
        """Send an operator alert. Never raises."""
        try:
            self.send(channel_id, DispatchPayload(kind="text", content=f"[SPACEWATCH ALERT]\n{message}"))
        except DeliveryError:
            logger.exception("Failed to send alert")
