"""
Environment-based configuration for the Lambda functions.

Every function reads the same variables; a function only fails on a missing
variable when it actually needs it (an ingestor has no topic ARN, an admin
handler has no queue).
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

# Entity kinds that go through the store -> notifier -> ingestor -> index pipeline
ENTITY_KINDS = ("article", "category", "company", "event", "location")

DEFAULT_INDEX_NAMES = {
    "article": "articles",
    "category": "categories",
    "company": "companies",
    "event": "events",
    "location": "locations",
}


def get_required_env(name: str, default: Optional[str] = None) -> str:
    """Get a required environment variable.

    In Lambda/production, the env var must be set. For tests, a default can be
    provided to allow the code to run in mocked environments.

    Args:
        name: Environment variable name
        default: Optional default for test environments

    Returns:
        The environment variable value

    Raises:
        ValueError: If the env var is not set and no default is provided
    """
    value = os.getenv(name, default)
    if value is None or value == "":
        raise ValueError(f"Required environment variable '{name}' is not set")
    return value


def normalize_endpoint(endpoint: str) -> str:
    """Strip trailing slashes and default to https when no scheme is given."""
    endpoint = endpoint.strip().rstrip("/")
    if not endpoint.startswith(("http://", "https://")):
        endpoint = f"https://{endpoint}"
    return endpoint


@dataclass(frozen=True)
class Settings:
    """Resolved configuration for one Lambda process."""

    bucket: str
    region: str = "us-east-1"
    opensearch_endpoint: Optional[str] = None
    index_names: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_INDEX_NAMES))
    topic_arns: Dict[str, str] = field(default_factory=dict)
    s3_endpoint: Optional[str] = None
    sns_endpoint: Optional[str] = None
    outbox_prefix: str = "outbox"
    outbox_grace_seconds: int = 60
    search_timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment."""
        endpoint = os.getenv("OPENSEARCH_ENDPOINT")
        index_names = {
            kind: os.getenv(f"{kind.upper()}_INDEX", default) for kind, default in DEFAULT_INDEX_NAMES.items()
        }
        topic_arns = {}
        for kind in ENTITY_KINDS:
            arn = os.getenv(f"{kind.upper()}_NOTIFIER")
            if arn:
                topic_arns[kind] = arn

        return cls(
            bucket=get_required_env("BUCKET_DATABASE"),
            region=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION") or "us-east-1",
            opensearch_endpoint=normalize_endpoint(endpoint) if endpoint else None,
            index_names=index_names,
            topic_arns=topic_arns,
            s3_endpoint=os.getenv("S3_ENDPOINT"),
            sns_endpoint=os.getenv("SNS_ENDPOINT"),
            outbox_prefix=os.getenv("OUTBOX_PREFIX", "outbox").strip("/"),
            outbox_grace_seconds=int(os.getenv("OUTBOX_GRACE_SECONDS", "60")),
            search_timeout_seconds=float(os.getenv("SEARCH_TIMEOUT_SECONDS", "10")),
        )

    def index_name(self, kind: str) -> str:
        """Index name for an entity kind."""
        return self.index_names.get(kind) or DEFAULT_INDEX_NAMES[kind]

    def topic_arn(self, kind: str) -> str:
        """SNS topic ARN for an entity kind."""
        arn = self.topic_arns.get(kind)
        if not arn:
            raise ValueError(f"Required environment variable '{kind.upper()}_NOTIFIER' is not set")
        return arn

    def require_opensearch_endpoint(self) -> str:
        """OpenSearch endpoint, failing when the function was deployed without one."""
        if not self.opensearch_endpoint:
            raise ValueError("Required environment variable 'OPENSEARCH_ENDPOINT' is not set")
        return self.opensearch_endpoint
