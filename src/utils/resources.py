"""
Process-lifetime resources.

Clients are built once per warm Lambda instance by ``get_resources()`` and
handed to every handler function as a ``Resources`` handle. Tests build their
own handle with ``build_resources`` around moto clients and a fake search
transport.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict, Optional

import boto3
import httpx

from .config import Settings
from .entity_store import ABOUT_KEY, ENTITY_PREFIXES, EntityStore, SingletonStore
from .notifier import ChangeNotifier
from .outbox import Outbox, publish_change
from .search_index import SearchIndexClient, SigV4Signer

if TYPE_CHECKING:  # pragma: no cover
    from mypy_boto3_s3.client import S3Client
    from mypy_boto3_sns.client import SNSClient


@dataclass
class Resources:
    """Everything a handler needs to reach S3, SNS and OpenSearch."""

    settings: Settings
    s3_client: "S3Client"
    sns_client: "SNSClient"
    http_client: httpx.Client
    signer: SigV4Signer

    def store(self, kind: str) -> EntityStore:
        """Entity store of a kind."""
        return EntityStore(self.s3_client, self.settings.bucket, ENTITY_PREFIXES[kind])

    def about_store(self) -> SingletonStore:
        return SingletonStore(self.s3_client, self.settings.bucket, ABOUT_KEY)

    def outbox(self) -> Outbox:
        return Outbox(self.s3_client, self.settings.bucket, self.settings.outbox_prefix)

    def notifier(self, kind: str) -> ChangeNotifier:
        """Change notifier of a kind; fails when its topic is not configured."""
        return ChangeNotifier(self.sns_client, self.settings.topic_arn(kind))

    def index(self, kind: str) -> SearchIndexClient:
        """Search index client of a kind; fails when no endpoint is configured."""
        return SearchIndexClient(
            self.http_client,
            self.settings.require_opensearch_endpoint(),
            self.settings.index_name(kind),
            self.signer,
            timeout=self.settings.search_timeout_seconds,
        )

    def search(self, kind: str) -> SearchIndexClient:
        """Index client of a request handler, bounded by SEARCH_TIMEOUT_SECONDS."""
        return self.index(kind).bounded(self.settings.search_timeout_seconds)

    def publish(self, kind: str, entity: Dict[str, Any], if_match: Optional[str] = None) -> str:
        """Write an entity through the outbox and notify its ingestor."""
        return publish_change(self.store(kind), self.outbox(), self.notifier(kind), entity, if_match=if_match)


def build_resources(
    settings: Settings,
    s3_client: "Optional[S3Client]" = None,
    sns_client: "Optional[SNSClient]" = None,
    http_client: Optional[httpx.Client] = None,
    signer: Optional[SigV4Signer] = None,
) -> Resources:
    """
    Build a resource handle, creating any client not supplied.

    Args:
        settings: Resolved configuration
        s3_client: S3 client (default: boto3 client honouring S3_ENDPOINT)
        sns_client: SNS client (default: boto3 client honouring SNS_ENDPOINT)
        http_client: httpx client used for OpenSearch calls
        signer: SigV4 signer for OpenSearch calls
    """
    return Resources(
        settings=settings,
        s3_client=s3_client
        or boto3.client("s3", region_name=settings.region, endpoint_url=settings.s3_endpoint),
        sns_client=sns_client
        or boto3.client("sns", region_name=settings.region, endpoint_url=settings.sns_endpoint),
        http_client=http_client or httpx.Client(timeout=settings.search_timeout_seconds),
        signer=signer or SigV4Signer(settings.region),
    )


@lru_cache(maxsize=1)
def get_resources() -> Resources:
    """Resources of this process, built on first use from the environment."""
    return build_resources(Settings.from_env())
