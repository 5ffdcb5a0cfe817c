"""Telegram Publisher for Spazio Alfieri Bot."""

import json
import time
import urllib.error
import urllib.request
from datetime import datetime

from .calendar_utils import ROME
from .config import TelegramConfig
from .logging_config import create_execution_logger
from .models import DateEntry, NewsletterEntry

WEEKDAYS_SHORT_IT = ["lun", "mar", "mer", "gio", "ven", "sab", "dom"]
MONTHS_SHORT_IT = [
    "gen", "feb", "mar", "apr", "mag", "giu",
    "lug", "ago", "set", "ott", "nov", "dic",
]


class TelegramPublisher:
    """Handles publishing newsletter schedules to a Telegram channel."""

    def __init__(self, config: TelegramConfig, execution_id: str | None = None):
        """Initialize Telegram publisher with configuration."""
        self.config = config
        self.logger = create_execution_logger("telegram_publisher", execution_id)
        self.base_url = f"https://api.telegram.org/bot{config.bot_token}"

        self.logger.info(
            "TelegramPublisher initialized",
            chat_id=config.chat_id,
            parse_mode=config.parse_mode,
            retry_attempts=config.retry_attempts,
        )

    def send_message(self, newsletter: NewsletterEntry, now: datetime) -> int | None:
        """
        Send the rendered schedule to the channel.

        Args:
            newsletter: The parsed newsletter
            now: Reference time for past/upcoming highlighting

        Returns:
            Telegram message id if the message was sent, None otherwise
        """
        message = self.format_message(newsletter, now)
        result = self._call_api(
            "sendMessage",
            {
                "chat_id": self.config.chat_id,
                "text": message,
                "parse_mode": self.config.parse_mode,
                "disable_web_page_preview": True,
            },
        )
        if result is None:
            self.logger.error(
                "Failed to send message", newsletter_link=newsletter.newsletter_link
            )
            return None

        message_id = result.get("message_id")
        self.logger.info(
            "Message sent successfully",
            newsletter_link=newsletter.newsletter_link,
            message_id=message_id,
        )
        return message_id

    def edit_message(
        self, message_id: int, newsletter: NewsletterEntry, now: datetime
    ) -> bool:
        """
        Re-render an already published schedule in place.

        Returns:
            True if the message was edited successfully, False otherwise
        """
        message = self.format_message(newsletter, now)
        result = self._call_api(
            "editMessageText",
            {
                "chat_id": self.config.chat_id,
                "message_id": message_id,
                "text": message,
                "parse_mode": self.config.parse_mode,
                "disable_web_page_preview": True,
            },
        )
        success = result is not None
        if success:
            self.logger.info("Message edited successfully", message_id=message_id)
        else:
            self.logger.error("Failed to edit message", message_id=message_id)
        return success

    def format_message(self, newsletter: NewsletterEntry, now: datetime) -> str:
        """
        Format the newsletter for Telegram with HTML parsing.

        Screenings before ``now`` are struck through and the next upcoming one
        across the whole newsletter is highlighted.
        """
        next_date = newsletter.next_date_after(now)

        blocks = []
        for programme in newsletter.programming_entries:
            lines = [f"<b>{self._escape_html(programme.title)}</b>"]
            for entry in sorted(programme.date_entries, key=lambda e: e.date):
                line = self.format_date_entry(entry)
                if entry.date <= now:
                    line = f"<s>{line}</s>"
                elif entry.date == next_date:
                    line = f"👉 <b>{line}</b>"
                lines.append(line)
            blocks.append("\n".join(lines))

        message = "\n\n".join(blocks)
        message += (
            f'\n\n🔗 <a href="{self._escape_html(newsletter.newsletter_link)}">'
            "Leggi la newsletter</a>"
        )
        return message

    def format_date_entry(self, entry: DateEntry) -> str:
        """Render a screening as e.g. ``mer 25 set · 17:00``."""
        local = entry.date.astimezone(ROME)
        text = (
            f"{WEEKDAYS_SHORT_IT[local.weekday()]} {local.day} "
            f"{MONTHS_SHORT_IT[local.month - 1]} · {local:%H:%M}"
        )
        if entry.additional_details:
            text += f" <i>{self._escape_html(entry.additional_details.strip())}</i>"
        return text

    def handle_rate_limit(self, retry_count: int) -> None:
        """
        Handle rate limiting with exponential backoff.

        Args:
            retry_count: Current retry attempt number
        """
        backoff_time = self.config.backoff_factor**retry_count
        self.logger.warning(
            f"Rate limited, waiting {backoff_time} seconds before retry {retry_count + 1}",
            retry_count=retry_count,
            backoff_time=backoff_time,
        )
        time.sleep(backoff_time)

    def _call_api(self, method: str, data: dict) -> dict | None:
        """
        Call a Bot API method with retry logic.

        Returns:
            The ``result`` object of the response, or None on failure
        """
        url = f"{self.base_url}/{method}"

        for attempt in range(self.config.retry_attempts):
            try:
                self.logger.debug(
                    f"Calling Telegram API {method} (attempt {attempt + 1})",
                    attempt=attempt + 1,
                )

                req = urllib.request.Request(
                    url,
                    data=json.dumps(data).encode("utf-8"),
                    headers={
                        "Content-Type": "application/json",
                        "User-Agent": "Spazio-Alfieri-Bot/1.0",
                    },
                )

                with urllib.request.urlopen(req, timeout=30) as response:
                    if response.status != 200:
                        self.logger.error(
                            f"Telegram API returned status {response.status}",
                            status_code=response.status,
                        )
                        return None

                    payload = json.loads(response.read().decode("utf-8"))
                    if not payload.get("ok"):
                        self.logger.error(
                            f"Telegram API error: {payload.get('description')}"
                        )
                        return None
                    return payload.get("result") or {}

            except urllib.error.HTTPError as e:
                if e.code == 429:
                    self.logger.warning(
                        f"Rate limited by Telegram API (attempt {attempt + 1})",
                        attempt=attempt + 1,
                        http_code=e.code,
                    )
                    if attempt < self.config.retry_attempts - 1:
                        self.handle_rate_limit(attempt)
                        continue
                    self.logger.error("Max retry attempts reached for rate limiting")
                    return None

                self.logger.error(
                    f"HTTP error calling {method}: {e.code} - {e.reason}",
                    http_code=e.code,
                    http_reason=e.reason,
                )
                return None

            except urllib.error.URLError as e:
                self.logger.error(
                    f"URL error calling {method}: {e.reason}", error_reason=str(e.reason)
                )
                return None

        return None

    def _escape_html(self, text: str) -> str:
        """Escape HTML characters in text for Telegram HTML parsing."""
        if not text:
            return ""

        text = text.replace("&", "&amp;")
        text = text.replace("<", "&lt;")
        text = text.replace(">", "&gt;")
        text = text.replace('"', "&quot;")
        text = text.replace("'", "&#x27;")

        return text
