"""Telegram Bot API client: send messages and photos via bot token."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
TELEGRAM_MAX_LENGTH = 4096
TELEGRAM_MAX_CAPTION = 1024
_MAX_RETRY_AFTER = 30


@dataclass(frozen=True)
class SendResult:
    """Result of a Telegram send call.

    ``retryable`` is set when the failure is worth retrying later: network
    errors, rate limiting (429) and server errors (5xx).
    """

    ok: bool
    message_id: int | None = None
    error: str | None = None
    retryable: bool = False


def _post_with_retries(
    method: str,
    bot_token: str,
    *,
    max_retries: int,
    timeout: float,
    json: dict | None = None,
    data: dict | None = None,
    files: dict | None = None,
) -> SendResult:
    """POST to a Bot API method, retrying retryable failures with backoff.

    Backoff is 2^attempt seconds (1s, 2s, 4s, ...) unless Telegram supplies a
    ``retry_after``. Returns a structured result: never raises.
    """
    url = f"{TELEGRAM_API_BASE}/bot{bot_token}/{method}"
    result = SendResult(ok=False, error="No attempt made", retryable=True)

    for attempt in range(max_retries):
        backoff: float = 2 ** attempt
        try:
            response = httpx.post(url, json=json, data=data, files=files, timeout=timeout)
            body = response.json()
            if not isinstance(body, dict):
                body = {"description": f"Unexpected response body: {body!r}"[:200]}
            if body.get("ok"):
                msg_id = body["result"]["message_id"]
                logger.info("Telegram %s sent: message_id=%d", method, msg_id)
                return SendResult(ok=True, message_id=msg_id)
            status = response.status_code
            retryable = status == 429 or status >= 500
            result = SendResult(
                ok=False,
                error=body.get("description", "Unknown Telegram error"),
                retryable=retryable,
            )
            retry_after = (body.get("parameters") or {}).get("retry_after")
            if retry_after:
                backoff = min(float(retry_after), _MAX_RETRY_AFTER)
            logger.warning(
                "Telegram API error on %s (attempt %d/%d, status %d): %s",
                method, attempt + 1, max_retries, status, result.error,
            )
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            result = SendResult(ok=False, error=str(exc), retryable=True)
            logger.warning(
                "Telegram request failed on %s (attempt %d/%d): %s",
                method, attempt + 1, max_retries, result.error,
            )

        if not result.retryable:
            break
        if attempt < max_retries - 1:
            time.sleep(backoff)

    return result


def send_message(
    bot_token: str,
    chat_id: str,
    text: str,
    *,
    parse_mode: str = "",
    disable_notification: bool = False,
    max_retries: int = 3,
    timeout: float = 30,
) -> SendResult:
    """Send a single text message via the Telegram Bot API."""
    payload: dict = {
        "chat_id": chat_id,
        "text": text,
        "disable_notification": disable_notification,
    }
    if parse_mode:
        payload["parse_mode"] = parse_mode
    return _post_with_retries(
        "sendMessage", bot_token, json=payload, max_retries=max_retries, timeout=timeout,
    )


def send_messages(
    bot_token: str,
    chat_id: str,
    chunks: list[str],
    *,
    parse_mode: str = "",
    max_retries: int = 3,
) -> list[SendResult]:
    """Send multiple message chunks in order. Stops on first failure."""
    results: list[SendResult] = []
    for chunk in chunks:
        result = send_message(
            bot_token, chat_id, chunk, parse_mode=parse_mode, max_retries=max_retries,
        )
        results.append(result)
        if not result.ok:
            break
    return results


def send_photo(
    bot_token: str,
    chat_id: str,
    photo: bytes,
    *,
    filename: str = "image.png",
    caption: str = "",
    disable_notification: bool = False,
    max_retries: int = 3,
    timeout: float = 60,
) -> SendResult:
    """Upload an image via ``sendPhoto`` as multipart form data."""
    data = {
        "chat_id": chat_id,
        "disable_notification": "true" if disable_notification else "false",
    }
    if caption:
        data["caption"] = caption[:TELEGRAM_MAX_CAPTION]
    files = {"photo": (filename, photo)}
    return _post_with_retries(
        "sendPhoto", bot_token, data=data, files=files, max_retries=max_retries, timeout=timeout,
    )


def chunk_message(text: str, max_length: int = TELEGRAM_MAX_LENGTH) -> list[str]:
    """Split *text* into chunks that each fit within *max_length*.

    Splitting strategy (in order of preference):
    1. Paragraph boundaries (``\\n\\n``)
    2. Line boundaries (``\\n``)
    3. Hard split at *max_length*
    """
    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    remaining = text

    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        split_pos = _find_split(remaining, "\n\n", max_length)
        if split_pos == -1:
            split_pos = _find_split(remaining, "\n", max_length)
        if split_pos == -1:
            split_pos = max_length

        chunk = remaining[:split_pos].rstrip()
        if chunk:
            chunks.append(chunk)
        remaining = remaining[split_pos:].lstrip("\n")

    return chunks


def _find_split(text: str, delimiter: str, max_length: int) -> int:
    """Find the last occurrence of *delimiter* within *max_length* characters."""
    pos = text.rfind(delimiter, 0, max_length)
    if pos <= 0:
        return -1
    return pos
