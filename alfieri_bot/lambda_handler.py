"""Main Lambda handler for Spazio Alfieri Bot."""

import json
import os
from datetime import UTC, datetime
from typing import Any

import boto3
from botocore.exceptions import ClientError

from .calendar_utils import ROME
from .config import Config
from .errors import NewsletterParseError
from .logging_config import create_execution_logger, setup_structured_logging
from .parser import parse_email_body
from .storage import NewsletterStore
from .telegram import TelegramPublisher
from .webhook import WebhookError, verify_webhook

# Setup structured logging
setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))

RERENDER_ACTION = "rerender"


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Main Lambda handler.

    API Gateway requests carry the Mailgun webhook for a new newsletter email;
    scheduled events (``{"action": "rerender"}``) refresh the published
    message so past screenings are struck through.

    Args:
        event: Lambda event data
        context: Lambda context object

    Returns:
        Response dictionary with status code and JSON body
    """
    execution_id = f"lambda_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_execution_logger("main", execution_id)

    main_logger.log_execution_start(
        lambda_request_id=getattr(context, "aws_request_id", "unknown"),
        lambda_function_name=getattr(context, "function_name", "unknown"),
    )

    try:
        config = Config()
        if event.get("action") == RERENDER_ACTION:
            response = handle_rerender(config, execution_id)
        else:
            response = handle_newsletter_webhook(event, config, execution_id)

        main_logger.log_execution_end(
            success=response["statusCode"] < 400, status_code=response["statusCode"]
        )
        return response

    except Exception as e:
        error_msg = f"Critical error in Lambda handler: {str(e)}"
        main_logger.error(error_msg, error=str(e))
        main_logger.log_execution_end(success=False, error=error_msg)
        return _response(500, "Spazio Alfieri Bot execution failed", error=error_msg)


def handle_newsletter_webhook(
    event: dict[str, Any], config: Config, execution_id: str
) -> dict[str, Any]:
    """Verify, parse, publish and store an inbound newsletter email."""
    logger = create_execution_logger("webhook", execution_id)
    logger.info("Received webhook from Mailgun")

    mailgun_config = config.get_mailgun_config()
    mailgun_config.signing_key = get_secret(
        config.mailgun_secret_name, config.aws_region, execution_id
    )

    try:
        payload = verify_webhook(event, mailgun_config)
    except WebhookError as e:
        logger.warning(f"Rejected webhook: {e}", status_code=e.status_code)
        return _response(e.status_code, "Webhook rejected", error=str(e))

    try:
        newsletter = parse_email_body(
            payload.subject,
            payload.html_body,
            selectors=config.get_selector_config(),
            execution_id=execution_id,
        )
    except NewsletterParseError as e:
        logger.error(
            f"Could not parse email body: {e}",
            error_kind=type(e).__name__,
            subject=payload.subject,
        )
        return _response(400, "Could not parse newsletter", error=str(e))

    store = NewsletterStore(
        table_name=config.dynamodb_table,
        aws_region=config.aws_region,
        execution_id=execution_id,
    )
    if store.is_published(newsletter.newsletter_link):
        logger.info(
            "Newsletter already published, skipping",
            newsletter_link=newsletter.newsletter_link,
        )
        return _response(200, "Newsletter already published")

    # Published only once the message id is recorded
    store.save(newsletter)

    publisher = _create_publisher(config, execution_id)
    now = datetime.now(ROME)
    message_id = publisher.send_message(newsletter, now)
    if message_id is None:
        return _response(502, "Failed to publish newsletter to Telegram")

    store.update_message_id(newsletter.newsletter_link, message_id)

    next_date = newsletter.next_date_after(now)
    metrics = {
        "programs": len(newsletter.programming_entries),
        "screenings": len(newsletter.all_dates()),
        "message_id": message_id,
    }
    logger.log_metrics(metrics)

    return _response(
        200,
        "Newsletter published",
        newsletter_link=newsletter.newsletter_link,
        next_rerender_at=next_date.isoformat() if next_date else None,
        metrics=metrics,
    )


def handle_rerender(config: Config, execution_id: str) -> dict[str, Any]:
    """Re-render the latest published newsletter against the current time."""
    logger = create_execution_logger("rerender", execution_id)

    store = NewsletterStore(
        table_name=config.dynamodb_table,
        aws_region=config.aws_region,
        execution_id=execution_id,
    )
    latest = store.load_latest()
    if latest is None:
        logger.warning("No published newsletter to re-render")
        return _response(404, "No published newsletter to re-render")

    newsletter, message_id = latest
    publisher = _create_publisher(config, execution_id)
    now = datetime.now(ROME)
    if not publisher.edit_message(message_id, newsletter, now):
        return _response(502, "Failed to re-render newsletter")

    next_date = newsletter.next_date_after(now)
    logger.info(
        "Newsletter re-rendered",
        newsletter_link=newsletter.newsletter_link,
        next_rerender_at=next_date.isoformat() if next_date else None,
    )
    return _response(
        200,
        "Newsletter re-rendered",
        newsletter_link=newsletter.newsletter_link,
        next_rerender_at=next_date.isoformat() if next_date else None,
    )


def _create_publisher(config: Config, execution_id: str) -> TelegramPublisher:
    telegram_config = config.get_telegram_config()
    telegram_config.bot_token = get_secret(
        config.telegram_secret_name, config.aws_region, execution_id
    )
    return TelegramPublisher(telegram_config, execution_id=execution_id)


def _response(status_code: int, message: str, **fields) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "body": json.dumps({"message": message, **fields}, default=str),
    }


def get_secret(secret_name: str, aws_region: str, execution_id: str) -> str:
    """
    Retrieve a secret value from AWS Secrets Manager.

    Supports both plain string secrets and JSON objects holding a single
    credential (e.g. ``{"token": "..."}``). Secret values are never logged.

    Args:
        secret_name: Name of the secret in Secrets Manager
        aws_region: AWS region for Secrets Manager client
        execution_id: Execution ID for logging context

    Returns:
        The secret value

    Raises:
        RuntimeError: If the secret cannot be retrieved or is malformed
        ValueError: If secret name or region is empty
    """
    secrets_logger = create_execution_logger("secrets_manager", execution_id)

    if not secret_name or not secret_name.strip():
        raise ValueError("Secret name cannot be empty")

    if not aws_region or not aws_region.strip():
        raise ValueError("AWS region cannot be empty")

    try:
        secrets_logger.info(f"Retrieving secret from Secrets Manager: {secret_name}")
        secrets_client = boto3.client("secretsmanager", region_name=aws_region)

        response = secrets_client.get_secret_value(SecretId=secret_name)

        if "SecretString" not in response:
            raise ValueError(f"Secret {secret_name} does not contain a string value")

        secret_value = response["SecretString"]

        if not secret_value or not secret_value.strip():
            raise ValueError(f"Secret {secret_name} contains empty value")

        try:
            secret_data = json.loads(secret_value)
        except json.JSONDecodeError:
            secrets_logger.info("Successfully retrieved plain text secret")
            return secret_value.strip()

        if not isinstance(secret_data, dict):
            raise ValueError(f"JSON secret {secret_name} must be an object")

        for key in ["token", "bot_token", "api_key", "signing_key"]:
            value = secret_data.get(key)
            if isinstance(value, str) and value.strip():
                secrets_logger.info("Successfully retrieved value from JSON secret")
                return value.strip()

        for value in secret_data.values():
            if isinstance(value, str) and value.strip():
                secrets_logger.info("Using first available value from JSON secret")
                return value.strip()

        raise ValueError(f"No valid value found in JSON secret {secret_name}")

    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        secrets_logger.error(
            f"AWS Secrets Manager error retrieving {secret_name}: {error_code}"
        )
        raise RuntimeError(f"Failed to retrieve secret {secret_name}") from e
    except ValueError as e:
        secrets_logger.error(f"Invalid secret format for {secret_name}: {e}")
        raise RuntimeError(f"Invalid secret format for {secret_name}") from e
