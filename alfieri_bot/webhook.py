"""Mailgun inbound webhook decoding and verification."""

import base64
import hashlib
import hmac
import time
import urllib.parse
from dataclasses import dataclass
from email.utils import parseaddr
from typing import Any

from .config import MailgunConfig


class WebhookError(Exception):
    """Rejected webhook request, carrying the HTTP status to answer with."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class MailgunPayload:
    """Fields of a Mailgun "store and notify" webhook used by the bot."""

    sender: str
    subject: str
    html_body: str
    token: str
    timestamp: str
    signature: str


def decode_event_body(event: dict[str, Any], max_bytes: int) -> str:
    """Extract the raw request body from an API Gateway event."""
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")

    if len(body.encode("utf-8")) > max_bytes:
        raise WebhookError(
            f"Payload of {len(body)} characters exceeds {max_bytes} bytes", 413
        )
    return body


def parse_form_payload(body: str) -> MailgunPayload:
    """Parse an urlencoded Mailgun form body.

    Raises:
        WebhookError: If a required field is missing
    """
    form = urllib.parse.parse_qs(body, keep_blank_values=True)

    def field(name: str) -> str:
        values = form.get(name)
        if not values:
            raise WebhookError(f"Missing webhook field '{name}'")
        return values[0]

    return MailgunPayload(
        sender=field("from"),
        subject=field("subject"),
        html_body=field("body-html"),
        token=field("token"),
        timestamp=field("timestamp"),
        signature=field("signature"),
    )


def verify_signature(
    signing_key: str,
    token: str,
    timestamp: str,
    signature: str,
    max_skew_seconds: int | None = None,
    now: float | None = None,
) -> None:
    """Check the HMAC-SHA256 signature Mailgun computes over timestamp + token.

    Raises:
        WebhookError: With status 401 if the signature or timestamp is invalid
    """
    expected = hmac.new(
        signing_key.encode("utf-8"),
        f"{timestamp}{token}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()

    if not hmac.compare_digest(
        expected.encode("utf-8"), signature.encode("utf-8")
    ):
        raise WebhookError("Payload signature verification failed", 401)

    if max_skew_seconds is not None:
        try:
            sent_at = int(timestamp)
        except ValueError as e:
            raise WebhookError(f"Invalid webhook timestamp '{timestamp}'", 401) from e

        current = time.time() if now is None else now
        if abs(current - sent_at) > max_skew_seconds:
            raise WebhookError("Webhook timestamp is too old", 401)


def check_sender(sender: str, allowed_senders: list[str]) -> str:
    """Return the bare sender address if it is allow-listed.

    Raises:
        WebhookError: With status 403 for unknown senders
    """
    _, address = parseaddr(sender)
    address = address.strip().lower()
    if address not in allowed_senders:
        raise WebhookError(f"Sender '{address}' is not allowed", 403)
    return address


def verify_webhook(event: dict[str, Any], config: MailgunConfig) -> MailgunPayload:
    """Decode, authenticate and allow-list an inbound webhook request."""
    body = decode_event_body(event, config.max_payload_bytes)
    payload = parse_form_payload(body)
    verify_signature(
        config.signing_key,
        payload.token,
        payload.timestamp,
        payload.signature,
        max_skew_seconds=config.max_timestamp_skew_seconds,
    )
    check_sender(payload.sender, config.allowed_senders)
    return payload
