from __future__ import annotations

import threading
import weakref
from typing import Iterable

from prometheus_client import CollectorRegistry, Counter

BUCKET_OPERATIONS_NAME = "objstore_s3_bucket_operations_total"
BUCKET_OPERATIONS_HELP = "Total number of operations that were executed against an s3 bucket."

# A registry accepts a metric name only once, so buckets sharing a registry
# share one counter and are told apart by the bucket label.
_registered: "weakref.WeakKeyDictionary[CollectorRegistry, Counter]" = (
    weakref.WeakKeyDictionary()
)
_registered_lock = threading.Lock()


def _new_counter(registry: CollectorRegistry | None) -> Counter:
    return Counter(
        BUCKET_OPERATIONS_NAME,
        BUCKET_OPERATIONS_HELP,
        ["bucket", "operation"],
        registry=registry,
    )


def bucket_operations_counter(
    bucket: str,
    operations: Iterable[str],
    registry: CollectorRegistry | None = None,
) -> Counter:
    """Return the operation counter for ``bucket``.

    Without a registry the counter is private to the caller: it still counts
    but is never exposed. Every operation label of the bucket is initialised
    to zero so idle operations show up once scraped.
    """
    if registry is None:
        counter = _new_counter(None)
    else:
        with _registered_lock:
            counter = _registered.get(registry)
            if counter is None:
                counter = _new_counter(registry)
                _registered[registry] = counter

    for operation in operations:
        counter.labels(bucket, operation)
    return counter
