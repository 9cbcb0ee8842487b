from __future__ import annotations

from unittest.mock import patch

import pytest
from prometheus_client import CollectorRegistry

from objstore.common.config import Config
from objstore.infra.storage import s3_client
from objstore.infra.storage.s3_client import S3Bucket, new_bucket
from tests.infra.fake_s3 import FakeS3Client


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def config() -> Config:
    return Config(
        bucket="test-bucket",
        endpoint="localhost:9000",
        access_key="test-key",
        secret_key="test-secret",
        insecure=True,
    )


@pytest.fixture
def fake_s3() -> FakeS3Client:
    return FakeS3Client(bucket="test-bucket")


@pytest.fixture
def bucket(config, registry, fake_s3) -> S3Bucket:
    """S3Bucket wired to the in-memory fake through the real factory."""
    with patch.object(s3_client, "build_client", return_value=fake_s3):
        return new_bucket(config, registry, component="test")


@pytest.fixture
def ops_count(registry):
    """Read the operation counter for a bucket from the test registry."""

    def read(operation: str, bucket: str = "test-bucket") -> float:
        value = registry.get_sample_value(
            "objstore_s3_bucket_operations_total",
            {"bucket": bucket, "operation": operation},
        )
        return value or 0.0

    return read
