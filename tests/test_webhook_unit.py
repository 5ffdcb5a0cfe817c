"""Unit tests for Mailgun webhook verification."""

import base64
import hashlib
import hmac
import urllib.parse

import pytest

from alfieri_bot.config import MailgunConfig
from alfieri_bot.webhook import (
    WebhookError,
    check_sender,
    decode_event_body,
    parse_form_payload,
    verify_signature,
    verify_webhook,
)

SIGNING_KEY = "key-test"


def sign(timestamp: str, token: str, key: str = SIGNING_KEY) -> str:
    return hmac.new(
        key.encode("utf-8"), f"{timestamp}{token}".encode("utf-8"), hashlib.sha256
    ).hexdigest()


def form_body(**overrides) -> str:
    fields = {
        "from": "Spazio Alfieri <newsletter@spazioalfieri.it>",
        "subject": "Spazio Alfieri • programmazione 25 settembre > 2 ottobre",
        "body-html": "<html></html>",
        "token": "abc123",
        "timestamp": "1727200000",
    }
    fields["signature"] = sign(fields["timestamp"], fields["token"])
    fields.update(overrides)
    return urllib.parse.urlencode(fields)


class TestWebhookUnit:
    """Unit tests for webhook helpers."""

    def setup_method(self):
        self.config = MailgunConfig(
            signing_key=SIGNING_KEY,
            allowed_senders=["newsletter@spazioalfieri.it"],
            max_timestamp_skew_seconds=None,
        )

    def test_parse_form_payload(self):
        payload = parse_form_payload(form_body())

        assert payload.sender == "Spazio Alfieri <newsletter@spazioalfieri.it>"
        assert payload.subject.endswith("2 ottobre")
        assert payload.html_body == "<html></html>"

    def test_missing_field_is_rejected(self):
        body = urllib.parse.urlencode({"from": "a@b.it"})

        with pytest.raises(WebhookError, match="subject"):
            parse_form_payload(body)

    def test_valid_signature(self):
        verify_signature(SIGNING_KEY, "abc123", "1727200000", sign("1727200000", "abc123"))

    def test_invalid_signature(self):
        with pytest.raises(WebhookError) as excinfo:
            verify_signature(SIGNING_KEY, "abc123", "1727200000", "0" * 64)

        assert excinfo.value.status_code == 401

    def test_non_ascii_signature_is_rejected(self):
        with pytest.raises(WebhookError) as excinfo:
            verify_signature(SIGNING_KEY, "abc123", "1727200000", "é" * 64)

        assert excinfo.value.status_code == 401

    def test_stale_timestamp(self):
        signature = sign("1000", "abc123")

        with pytest.raises(WebhookError, match="too old"):
            verify_signature(
                SIGNING_KEY, "abc123", "1000", signature, max_skew_seconds=900, now=5000
            )

    def test_sender_allow_list(self):
        allowed = ["newsletter@spazioalfieri.it"]

        assert (
            check_sender("Spazio Alfieri <Newsletter@SpazioAlfieri.it>", allowed)
            == "newsletter@spazioalfieri.it"
        )
        with pytest.raises(WebhookError) as excinfo:
            check_sender("someone@example.com", allowed)
        assert excinfo.value.status_code == 403

    def test_base64_body_is_decoded(self):
        raw = form_body()
        event = {"body": base64.b64encode(raw.encode("utf-8")).decode(), "isBase64Encoded": True}

        assert decode_event_body(event, 1_000_000) == raw

    def test_oversized_payload_is_rejected(self):
        with pytest.raises(WebhookError) as excinfo:
            decode_event_body({"body": "x" * 100}, 10)

        assert excinfo.value.status_code == 413

    def test_verify_webhook(self):
        payload = verify_webhook({"body": form_body()}, self.config)

        assert payload.token == "abc123"

    def test_verify_webhook_rejects_tampered_body(self):
        body = form_body(subject="programmazione 1 > 7 ottobre")
        body = body.replace("abc123", "abc124", 1)

        with pytest.raises(WebhookError) as excinfo:
            verify_webhook({"body": body}, self.config)

        assert excinfo.value.status_code == 401
