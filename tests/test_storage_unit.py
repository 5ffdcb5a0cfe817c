"""Unit tests for the DynamoDB newsletter store."""

import os
import time
from unittest.mock import Mock, patch

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from alfieri_bot.calendar_utils import make_date
from alfieri_bot.models import DateEntry, NewsletterEntry, ProgrammingEntry
from alfieri_bot.storage import NewsletterStore

TABLE_NAME = "test-newsletters"
REGION = "us-east-1"


def newsletter(link: str) -> NewsletterEntry:
    return NewsletterEntry(
        programming_entries=(
            ProgrammingEntry(
                title="MAKING OF",
                date_entries=(
                    DateEntry(make_date(2024, 9, 26, 15, 0)),
                    DateEntry(make_date(2024, 9, 27, 19, 0), "— v.o."),
                ),
            ),
        ),
        newsletter_link=link,
    )


@pytest.fixture
def aws_environment():
    with patch.dict(
        os.environ,
        {
            "AWS_ACCESS_KEY_ID": "testing",
            "AWS_SECRET_ACCESS_KEY": "testing",
            "AWS_DEFAULT_REGION": REGION,
        },
    ):
        with mock_aws():
            boto3.client("dynamodb", region_name=REGION).create_table(
                TableName=TABLE_NAME,
                KeySchema=[{"AttributeName": "newsletter_link", "KeyType": "HASH"}],
                AttributeDefinitions=[
                    {"AttributeName": "newsletter_link", "AttributeType": "S"}
                ],
                BillingMode="PAY_PER_REQUEST",
            )
            yield


class TestNewsletterStoreUnit:
    """Unit tests for NewsletterStore."""

    def test_save_and_is_published(self, aws_environment):
        store = NewsletterStore(TABLE_NAME, REGION)

        assert not store.is_published("https://example.com/nl/1")
        store.save(newsletter("https://example.com/nl/1"), message_id=10)

        assert store.is_published("https://example.com/nl/1")

    def test_newsletter_without_message_is_not_published(self, aws_environment):
        store = NewsletterStore(TABLE_NAME, REGION)
        store.save(newsletter("https://example.com/nl/1"))

        assert not store.is_published("https://example.com/nl/1")

        store.update_message_id("https://example.com/nl/1", 12)

        assert store.is_published("https://example.com/nl/1")

    def test_load_latest_restores_newsletter(self, aws_environment):
        store = NewsletterStore(TABLE_NAME, REGION)
        store.save(newsletter("https://example.com/nl/1"), message_id=10)
        time.sleep(0.01)
        store.save(newsletter("https://example.com/nl/2"))
        store.update_message_id("https://example.com/nl/2", 11)

        restored, message_id = store.load_latest()

        assert restored == newsletter("https://example.com/nl/2")
        assert message_id == 11

    def test_load_latest_skips_unpublished(self, aws_environment):
        store = NewsletterStore(TABLE_NAME, REGION)
        store.save(newsletter("https://example.com/nl/1"), message_id=10)
        time.sleep(0.01)
        store.save(newsletter("https://example.com/nl/2"))

        restored, message_id = store.load_latest()

        assert restored.newsletter_link == "https://example.com/nl/1"
        assert message_id == 10

    def test_load_latest_empty_table(self, aws_environment):
        store = NewsletterStore(TABLE_NAME, REGION)

        assert store.load_latest() is None

    def test_client_errors_propagate(self):
        with patch("boto3.resource") as mock_resource:
            mock_table = Mock()
            mock_table.get_item.side_effect = ClientError(
                {"Error": {"Code": "ResourceNotFoundException"}}, "GetItem"
            )
            mock_resource.return_value.Table.return_value = mock_table
            store = NewsletterStore(TABLE_NAME, REGION)

            with pytest.raises(ClientError):
                store.is_published("https://example.com/nl/1")
