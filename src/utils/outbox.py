"""
Write-ahead outbox for change notifications.

Every admin write first records the notification it owes under
``{prefix}/{timestamp}-{uuid}.json``, then writes the entity, then publishes
and deletes the record. A record left behind (publish failed, Lambda timed
out) is picked up by the relay once it is older than the grace period, so a
durable entity write always ends up re-indexed.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .entity_store import EntityStore, read_json_object, write_json_object
from .errors import NotifyError, StoreError
from .logging import get_logger
from .notifier import ChangeNotifier, build_change_payload, publish_message

if TYPE_CHECKING:  # pragma: no cover
    from mypy_boto3_s3.client import S3Client
    from mypy_boto3_sns.client import SNSClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class OutboxRecord:
    """A pending notification."""

    key: str
    topic_arn: str
    payload: Dict[str, Any]
    created_at: str


class Outbox:
    """Pending notifications stored next to the entities."""

    def __init__(self, s3_client: "S3Client", bucket: str, prefix: str = "outbox") -> None:
        self.s3_client = s3_client
        self.bucket = bucket
        self.prefix = prefix.strip("/")

    def record(self, topic_arn: str, payload: Dict[str, Any], now: Optional[datetime] = None) -> str:
        """
        Persist a pending notification.

        Returns:
            Key of the outbox record

        Raises:
            StoreError: If the record cannot be written
        """
        now = now or datetime.now(timezone.utc)
        key = f"{self.prefix}/{now.strftime('%Y%m%dT%H%M%S%fZ')}-{uuid.uuid4().hex}.json"
        write_json_object(
            self.s3_client,
            self.bucket,
            key,
            {"topic_arn": topic_arn, "payload": payload, "created_at": now.isoformat()},
        )
        return key

    def complete(self, key: str) -> None:
        """Delete a record whose notification was published."""
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to delete outbox record {key}", {"key": key}) from e

    def discard(self, key: str) -> None:
        """Best-effort removal of a record whose entity write never happened."""
        try:
            self.complete(key)
        except StoreError as e:
            # The relay will publish a harmless duplicate
            logger.warning("Failed to discard outbox record", key=key, error=str(e))

    def pending_keys(self, older_than_seconds: int = 60, now: Optional[datetime] = None) -> List[str]:
        """
        Keys of the records older than the grace period, oldest first.

        Younger records may still belong to an in-flight request.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=older_than_seconds)

        keys: List[str] = []
        try:
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=f"{self.prefix}/"):
                for item in page.get("Contents", []):
                    if item["LastModified"] <= cutoff:
                        keys.append(item["Key"])
        except (ClientError, BotoCoreError) as e:
            raise StoreError("Failed to list outbox records", {"prefix": self.prefix}) from e
        return sorted(keys)

    def load(self, key: str) -> Optional[OutboxRecord]:
        """
        Read one record; None when it was completed in the meantime.

        Raises:
            StoreError: If the record cannot be read or is not a JSON object
        """
        stored = read_json_object(self.s3_client, self.bucket, key)
        if stored is None:
            return None
        return OutboxRecord(
            key=key,
            topic_arn=str(stored.data.get("topic_arn", "")),
            payload=stored.data.get("payload") or {},
            created_at=str(stored.data.get("created_at", "")),
        )


def publish_change(
    store: EntityStore,
    outbox: Outbox,
    notifier: ChangeNotifier,
    entity: Dict[str, Any],
    *,
    if_match: Optional[str] = None,
) -> str:
    """
    Durably write an entity and notify its ingestor.

    Args:
        store: Entity store of the entity kind
        outbox: Outbox holding the pending notification
        notifier: Notifier of the entity kind
        entity: Full entity document
        if_match: Optional ETag precondition for the entity write

    Returns:
        ETag of the written entity

    Raises:
        StoreError: If the outbox record or the entity cannot be written
    """
    payload = build_change_payload(entity["id"])
    key = outbox.record(notifier.topic_arn, payload)

    try:
        etag = store.put(entity, if_match=if_match)
    except StoreError:
        outbox.discard(key)
        raise

    try:
        notifier.notify(payload)
    except NotifyError as e:
        logger.warning("Publish failed, left for the outbox relay", key=key, entity_id=payload["id"], error=str(e))
        return etag

    try:
        outbox.complete(key)
    except StoreError as e:
        logger.warning("Failed to complete outbox record", key=key, error=str(e))
    return etag


def relay_pending(outbox: Outbox, sns_client: "SNSClient", older_than_seconds: int = 60) -> Dict[str, int]:
    """
    Publish every stale outbox record and delete the ones that went out.

    A record that cannot be read or published is counted as failed and left
    in place; the remaining records are still relayed.

    Returns:
        Counts of relayed and failed records
    """
    relayed = 0
    failed = 0
    for key in outbox.pending_keys(older_than_seconds):
        try:
            record = outbox.load(key)
            if record is None:
                continue
            publish_message(sns_client, record.topic_arn, record.payload)
            outbox.complete(record.key)
            relayed += 1
        except (NotifyError, StoreError) as e:
            failed += 1
            logger.error("Failed to relay outbox record", key=key, error=str(e))
    return {"relayed": relayed, "failed": failed}
