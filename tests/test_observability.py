from prometheus_client import CollectorRegistry, generate_latest

from objstore.infra.observability.metrics import bucket_operations_counter
from objstore.infra.storage.client import OperationKind

OPERATIONS = [op.value for op in OperationKind]


def test_counter_exposes_every_operation_at_zero():
    registry = CollectorRegistry()
    bucket_operations_counter("blocks", OPERATIONS, registry)

    for operation in OPERATIONS:
        value = registry.get_sample_value(
            "objstore_s3_bucket_operations_total",
            {"bucket": "blocks", "operation": operation},
        )
        assert value == 0.0


def test_buckets_share_counter_within_registry():
    registry = CollectorRegistry()
    first = bucket_operations_counter("first", OPERATIONS, registry)
    second = bucket_operations_counter("second", OPERATIONS, registry)

    assert first is second
    first.labels("first", "GetObject").inc()
    second.labels("second", "GetObject").inc(2)

    assert registry.get_sample_value(
        "objstore_s3_bucket_operations_total",
        {"bucket": "first", "operation": "GetObject"},
    ) == 1.0
    assert registry.get_sample_value(
        "objstore_s3_bucket_operations_total",
        {"bucket": "second", "operation": "GetObject"},
    ) == 2.0


def test_exposition_format():
    registry = CollectorRegistry()
    counter = bucket_operations_counter("blocks", OPERATIONS, registry)
    counter.labels("blocks", "ListBucket").inc()

    text = generate_latest(registry).decode()

    assert "# HELP objstore_s3_bucket_operations_total Total number of operations" in text
    assert 'objstore_s3_bucket_operations_total{bucket="blocks",operation="ListBucket"} 1.0' in text


def test_counter_without_registry_is_private():
    first = bucket_operations_counter("blocks", OPERATIONS)
    second = bucket_operations_counter("blocks", OPERATIONS)

    assert first is not second
