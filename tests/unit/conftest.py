"""
Test fixtures for Lambda function tests.

Provides mocked AWS resources (moto S3 and SNS) and an in-memory OpenSearch
wired into a ``Resources`` handle.
"""

import os
from typing import Any, Dict, Generator

import boto3
import pytest
from moto import mock_aws

from src.utils.config import ENTITY_KINDS, Settings
from src.utils.resources import Resources, build_resources
from tests.unit.fake_opensearch import ENDPOINT, FakeOpenSearch

BUCKET = "cultural-events-test"
ACCOUNT_ID = "123456789012"
REGION = "us-east-1"


def topic_arn(kind: str) -> str:
    return f"arn:aws:sns:{REGION}:{ACCOUNT_ID}:{kind}-changes"


@pytest.fixture
def aws_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set fake AWS credentials and the function environment."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)
    monkeypatch.setenv("AWS_REGION", REGION)
    monkeypatch.setenv("BUCKET_DATABASE", BUCKET)
    monkeypatch.setenv("OPENSEARCH_ENDPOINT", ENDPOINT + "/")
    for kind in ENTITY_KINDS:
        monkeypatch.setenv(f"{kind.upper()}_NOTIFIER", topic_arn(kind))
    for name in ("S3_ENDPOINT", "SNS_ENDPOINT", "OUTBOX_PREFIX", "OUTBOX_GRACE_SECONDS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def aws(aws_credentials: None) -> Generator[Dict[str, Any], None, None]:
    """Mock S3 bucket and one SNS topic per entity kind."""
    with mock_aws():
        s3 = boto3.client("s3", region_name=REGION)
        s3.create_bucket(Bucket=BUCKET)
        sns = boto3.client("sns", region_name=REGION)
        for kind in ENTITY_KINDS:
            sns.create_topic(Name=f"{kind}-changes")
        yield {"s3": s3, "sns": sns}


@pytest.fixture
def fake_search() -> FakeOpenSearch:
    """In-memory OpenSearch."""
    return FakeOpenSearch()


@pytest.fixture
def resources(aws: Dict[str, Any], fake_search: FakeOpenSearch) -> Resources:
    """Resource handle backed by moto and the fake search engine."""
    return build_resources(
        Settings.from_env(),
        s3_client=aws["s3"],
        sns_client=aws["sns"],
        http_client=fake_search.client(),
    )


@pytest.fixture
def debug_logging() -> Generator[None, None, None]:
    """Enable DEBUG logs for the duration of a test."""
    previous = os.environ.get("LOG_LEVEL")
    os.environ["LOG_LEVEL"] = "DEBUG"
    yield
    if previous is None:
        os.environ.pop("LOG_LEVEL", None)
    else:
        os.environ["LOG_LEVEL"] = previous
