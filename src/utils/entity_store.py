"""
S3-backed entity store.

One JSON document per entity at ``{prefix}/{encoded-id}.json``. Writes are
last-write-wins unless the caller passes the ETag it read (``if_match``) or
asks for create-only semantics (``if_none_match``).
"""

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .errors import PreconditionFailedError, StoreError
from .ids import build_key, normalize_id
from .logging import get_logger

if TYPE_CHECKING:  # pragma: no cover
    from mypy_boto3_s3.client import S3Client

logger = get_logger(__name__)

# S3 error codes meaning "the key is not there"
_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}

# S3 error codes raised by conditional writes
_PRECONDITION_CODES = {"PreconditionFailed", "412", "ConditionalRequestConflict"}

# Entity prefixes, one per kind
ENTITY_PREFIXES = {
    "article": "articles",
    "category": "categories",
    "company": "companies",
    "event": "events",
    "location": "locations",
}

ABOUT_KEY = "institutional/about.json"


@dataclass(frozen=True)
class StoredEntity:
    """An entity document together with the ETag it was read at."""

    data: Dict[str, Any]
    etag: str


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def read_json_object(s3_client: "S3Client", bucket: str, key: str) -> Optional[StoredEntity]:
    """Read one JSON object; None when the key does not exist.

    Raises:
        StoreError: On any other S3 failure, or when the body is not a JSON object
    """
    try:
        response = s3_client.get_object(Bucket=bucket, Key=key)
        raw = response["Body"].read()
    except ClientError as e:
        if _error_code(e) in _MISSING_CODES:
            return None
        logger.error("Failed to read object", bucket=bucket, key=key, error=str(e))
        raise StoreError(f"Failed to read {key}", {"key": key}) from e
    except BotoCoreError as e:
        logger.error("Failed to read object", bucket=bucket, key=key, error=str(e))
        raise StoreError(f"Failed to read {key}", {"key": key}) from e

    try:
        data = json.loads(raw)
    except ValueError as e:
        raise StoreError(f"Object {key} is not valid JSON", {"key": key}) from e
    if not isinstance(data, dict):
        raise StoreError(f"Object {key} is not a JSON object", {"key": key})

    return StoredEntity(data=data, etag=str(response.get("ETag", "")))


def write_json_object(
    s3_client: "S3Client",
    bucket: str,
    key: str,
    document: Dict[str, Any],
    *,
    if_match: Optional[str] = None,
    if_none_match: bool = False,
) -> str:
    """Write one JSON object and return its new ETag.

    Raises:
        PreconditionFailedError: When a conditional write loses
        StoreError: On any other S3 failure
    """
    put_kwargs: Dict[str, Any] = {
        "Bucket": bucket,
        "Key": key,
        "Body": json.dumps(document, ensure_ascii=False).encode("utf-8"),
        "ContentType": "application/json",
    }
    if if_match:
        put_kwargs["IfMatch"] = if_match
    if if_none_match:
        put_kwargs["IfNoneMatch"] = "*"

    try:
        response = s3_client.put_object(**put_kwargs)
    except ClientError as e:
        if _error_code(e) in _PRECONDITION_CODES:
            raise PreconditionFailedError(
                f"Object {key} was modified concurrently", {"key": key}
            ) from e
        logger.error("Failed to write object", bucket=bucket, key=key, error=str(e))
        raise StoreError(f"Failed to write {key}", {"key": key}) from e
    except BotoCoreError as e:
        logger.error("Failed to write object", bucket=bucket, key=key, error=str(e))
        raise StoreError(f"Failed to write {key}", {"key": key}) from e

    return str(response.get("ETag", ""))


class EntityStore:
    """Canonical JSON documents of one entity kind."""

    def __init__(self, s3_client: "S3Client", bucket: str, prefix: str) -> None:
        self.s3_client = s3_client
        self.bucket = bucket
        self.prefix = prefix.strip("/")

    def key_for(self, entity_id: str) -> str:
        """S3 key of an entity."""
        return build_key(self.prefix, entity_id)

    def get(self, entity_id: str) -> Optional[Dict[str, Any]]:
        """Return the entity document, or None when it does not exist."""
        stored = self.get_versioned(entity_id)
        return stored.data if stored else None

    def get_versioned(self, entity_id: str) -> Optional[StoredEntity]:
        """Return the entity document and its ETag, or None when it does not exist."""
        if not normalize_id(entity_id):
            return None
        return read_json_object(self.s3_client, self.bucket, self.key_for(entity_id))

    def put(
        self,
        entity: Dict[str, Any],
        *,
        if_match: Optional[str] = None,
        if_none_match: bool = False,
    ) -> str:
        """
        Overwrite the entity document at its key.

        Args:
            entity: Full entity, must carry a non-empty ``id``
            if_match: Only write when the stored ETag still matches
            if_none_match: Only write when no document exists yet

        Returns:
            ETag of the written document
        """
        entity_id = normalize_id(entity.get("id"))
        if not entity_id:
            raise ValueError("entity id is required")
        return write_json_object(
            self.s3_client,
            self.bucket,
            self.key_for(entity_id),
            entity,
            if_match=if_match,
            if_none_match=if_none_match,
        )


class SingletonStore:
    """A single JSON document at a fixed key (e.g. the about page)."""

    def __init__(self, s3_client: "S3Client", bucket: str, key: str) -> None:
        self.s3_client = s3_client
        self.bucket = bucket
        self.key = key

    def get(self) -> Optional[Dict[str, Any]]:
        stored = read_json_object(self.s3_client, self.bucket, self.key)
        return stored.data if stored else None

    def put(self, document: Dict[str, Any], *, if_match: Optional[str] = None) -> str:
        return write_json_object(self.s3_client, self.bucket, self.key, document, if_match=if_match)
