"""
Change notifier.

Publishes the ``{"id": ...}`` change payload of an entity to its SNS topic.
Subscribed SQS queues feed the ingestors.
"""

import json
from typing import TYPE_CHECKING, Any, Dict

from botocore.exceptions import BotoCoreError, ClientError

from .errors import NotifyError
from .ids import normalize_id
from .logging import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from mypy_boto3_sns.client import SNSClient

logger = get_logger(__name__)


def build_change_payload(entity_id: str) -> Dict[str, str]:
    """The only data carried from a write to its ingestion."""
    return {"id": normalize_id(entity_id)}


class ChangeNotifier:
    """Publishes change payloads to one topic."""

    def __init__(self, sns_client: "SNSClient", topic_arn: str) -> None:
        self.sns_client = sns_client
        self.topic_arn = topic_arn

    def notify(self, payload: Dict[str, Any]) -> str:
        """
        Publish a change payload.

        Args:
            payload: Change payload, ``{"id": ...}``

        Returns:
            SNS message ID

        Raises:
            NotifyError: If the publish call fails
        """
        return publish_message(self.sns_client, self.topic_arn, payload)


def publish_message(sns_client: "SNSClient", topic_arn: str, payload: Dict[str, Any]) -> str:
    """Publish one JSON message to a topic, raising NotifyError on failure."""
    try:
        response = sns_client.publish(TopicArn=topic_arn, Message=json.dumps(payload))
    except (ClientError, BotoCoreError) as e:
        logger.error("Failed to publish change", topic_arn=topic_arn, payload=payload, error=str(e))
        raise NotifyError(f"Failed to publish to {topic_arn}", {"topicArn": topic_arn}) from e

    message_id = str(response.get("MessageId", ""))
    logger.debug("Published change", topic_arn=topic_arn, message_id=message_id, payload=payload)
    return message_id
