"""
Telegram Bot API sink.

Sends one MarkdownV2 message per call through `sendMessage`. No retries: a
failed send surfaces as DeliveryError and the caller decides what to do
(the auto-report runner simply tries again on the next hourly tick).

The bot token is part of the request URL, so it is scrubbed from every
error message before logging or raising.
"""

from __future__ import annotations

import requests

from reflexum.config import TELEGRAM_API_BASE, TELEGRAM_TIMEOUT_SECONDS
from reflexum.errors import DeliveryError
from reflexum.observability.logging import get_logger

logger = get_logger(__name__)

PARSE_MODE = "MarkdownV2"
# Longest response snippet carried into DeliveryError
ERROR_BODY_MAX_CHARS = 300


class TelegramSink:
    """MessageSink posting to a single Telegram chat."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        api_base: str = TELEGRAM_API_BASE,
        timeout: float = TELEGRAM_TIMEOUT_SECONDS,
    ):
        if not bot_token or not chat_id:
            raise ValueError("TelegramSink needs both a bot token and a chat id")
        self._token = bot_token
        self.chat_id = chat_id
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout

    @property
    def url(self) -> str:
        return f"{self.api_base}/bot{self._token}/sendMessage"

    def _scrub(self, text: str) -> str:
        return text.replace(self._token, "<token>")

    def send(self, text: str) -> None:
        """
        Send `text` as a MarkdownV2 message.

        Raises:
            DeliveryError: Network failure, timeout, or non-2xx response

        Side Effects:
            Makes one HTTP POST to the Telegram Bot API
        """
        payload = {"chat_id": self.chat_id, "text": text, "parse_mode": PARSE_MODE}
        try:
            response = requests.post(self.url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning("Telegram send timed out after %ss", self.timeout)
            raise DeliveryError("Telegram request timed out") from e
        except requests.exceptions.RequestException as e:
            message = self._scrub(str(e))
            logger.error("Telegram send failed: %s", message)
            raise DeliveryError(f"Telegram request failed: {message}") from e

        if not response.ok:
            body = self._scrub(response.text or "")[:ERROR_BODY_MAX_CHARS]
            logger.error("Telegram error (%s): %s", response.status_code, body)
            raise DeliveryError(
                f"Telegram error ({response.status_code}): {body}",
                status_code=response.status_code,
            )

        logger.info("Telegram message sent (%d chars)", len(text))
