"""Newsletter persistence for Spazio Alfieri Bot."""

from datetime import UTC, datetime

import boto3
from botocore.exceptions import ClientError

from .logging_config import create_execution_logger
from .models import NewsletterEntry


class NewsletterStore:
    """Stores parsed newsletters in DynamoDB, keyed by newsletter link.

    Each item nests newsletter -> programs -> entries, together with the id of
    the Telegram message that published it.
    """

    def __init__(
        self,
        table_name: str,
        aws_region: str = "eu-south-1",
        execution_id: str | None = None,
    ):
        """Initialize the store with DynamoDB configuration.

        Args:
            table_name: Name of the DynamoDB table
            aws_region: AWS region for DynamoDB client
            execution_id: Execution ID for logging context
        """
        self.table_name = table_name
        self.aws_region = aws_region
        self.logger = create_execution_logger("newsletter_store", execution_id)
        self.dynamodb = boto3.resource("dynamodb", region_name=aws_region)
        self.table = self.dynamodb.Table(table_name)

        self.logger.info(
            "NewsletterStore initialized", table_name=table_name, aws_region=aws_region
        )

    def is_published(self, newsletter_link: str) -> bool:
        """Check whether a newsletter has been stored with its Telegram message.

        An item without a message id was stored but never reached the channel.
        """
        try:
            response = self.table.get_item(
                Key={"newsletter_link": newsletter_link},
                ProjectionExpression="newsletter_link, message_id",
            )
        except ClientError as e:
            self.logger.error(
                f"Error checking newsletter {newsletter_link}: {e}",
                newsletter_link=newsletter_link,
                error=str(e),
            )
            raise

        item = response.get("Item")
        published = item is not None and item.get("message_id") is not None
        self.logger.debug(
            "Checked for published newsletter",
            newsletter_link=newsletter_link,
            published=published,
        )
        return published

    def save(self, newsletter: NewsletterEntry, message_id: int | None = None) -> None:
        """Store a parsed newsletter and the id of its Telegram message."""
        item = {
            **newsletter.to_dict(),
            "message_id": message_id,
            "created_at": datetime.now(UTC).isoformat(),
        }
        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            self.logger.error(
                f"Error storing newsletter: {e}",
                newsletter_link=newsletter.newsletter_link,
                error=str(e),
            )
            raise

        self.logger.info(
            "Stored newsletter in DynamoDB",
            newsletter_link=newsletter.newsletter_link,
            programs_count=len(newsletter.programming_entries),
            message_id=message_id,
        )

    def update_message_id(self, newsletter_link: str, message_id: int) -> None:
        try:
            self.table.update_item(
                Key={"newsletter_link": newsletter_link},
                UpdateExpression="SET message_id = :message_id",
                ExpressionAttributeValues={":message_id": message_id},
            )
        except ClientError as e:
            self.logger.error(
                f"Error updating message id: {e}",
                newsletter_link=newsletter_link,
                error=str(e),
            )
            raise

    def load_latest(self) -> tuple[NewsletterEntry, int] | None:
        """Return the most recently published newsletter and its message id."""
        items = []
        scan_kwargs = {}
        try:
            while True:
                response = self.table.scan(**scan_kwargs)
                items.extend(
                    item
                    for item in response.get("Items", [])
                    if item.get("message_id") is not None
                )
                if "LastEvaluatedKey" not in response:
                    break
                scan_kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except ClientError as e:
            self.logger.error(f"Error loading newsletters: {e}", error=str(e))
            raise

        if not items:
            self.logger.info("No published newsletter found")
            return None

        latest = max(items, key=lambda item: item.get("created_at", ""))
        return NewsletterEntry.from_dict(latest), int(latest["message_id"])
