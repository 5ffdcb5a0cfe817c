"""Configuration management for Spazio Alfieri Bot."""

import os
from dataclasses import dataclass


@dataclass
class TelegramConfig:
    """Configuration for Telegram Bot API."""

    bot_token: str
    chat_id: str
    parse_mode: str = "HTML"
    retry_attempts: int = 3
    backoff_factor: float = 2.0


@dataclass
class MailgunConfig:
    """Configuration for the inbound Mailgun webhook."""

    signing_key: str
    allowed_senders: list[str]
    max_payload_bytes: int = 1_000_000
    max_timestamp_skew_seconds: int | None = 900


@dataclass(frozen=True)
class SelectorConfig:
    """CSS selectors tied to the newsletter email template."""

    link_selector: str = "table > tbody > tr > td > table > tbody > tr > td > p > a"
    title_selector: str = (
        "div div div table tbody tr td table tbody tr td table tbody tr td "
        "table tbody tr td table tbody tr td h1"
    )
    schedule_box_tag: str = "tbody"
    schedule_box_depth: int = 3


class Config:
    """Main configuration manager."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.telegram_secret_name = os.getenv(
            "TELEGRAM_SECRET_NAME", "spazio-alfieri-bot-token"
        )
        self.mailgun_secret_name = os.getenv(
            "MAILGUN_SECRET_NAME", "spazio-alfieri-mailgun-key"
        )
        self.chat_id = os.getenv("TELEGRAM_CHAT_ID", "")
        self.dynamodb_table = os.getenv("DYNAMODB_TABLE", "spazio-alfieri-newsletters")
        self.aws_region = os.getenv(
            "CURRENT_AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "eu-south-1")
        )
        self.allowed_senders_raw = os.getenv("ALLOWED_SENDERS", "")

    def get_allowed_senders(self) -> list[str]:
        """Get the lower-cased sender addresses allowed to trigger a parse."""
        senders = [
            sender.strip().lower()
            for sender in self.allowed_senders_raw.split(",")
            if sender.strip()
        ]
        if not senders:
            raise ValueError("ALLOWED_SENDERS must list at least one address")
        return senders

    def get_telegram_config(self) -> TelegramConfig:
        """Get Telegram configuration."""
        # Token will be retrieved from Secrets Manager at runtime
        return TelegramConfig(bot_token="", chat_id=self.chat_id)

    def get_mailgun_config(self) -> MailgunConfig:
        """Get Mailgun configuration."""
        # Signing key will be retrieved from Secrets Manager at runtime
        return MailgunConfig(
            signing_key="", allowed_senders=self.get_allowed_senders()
        )

    def get_selector_config(self) -> SelectorConfig:
        """Get HTML selector configuration."""
        return SelectorConfig()
