"""Object storage abstraction layer.

This module provides the bucket contract shared by storage backends and the
error types raised by them. The S3-compatible implementation lives in
``objstore.infra.storage.s3_client``.
"""

from objstore.common.errors import ConfigValidationError, ObjectStoreError

from .client import (
    DIR_DELIM,
    ClientInitError,
    InvalidRangeError,
    ObjectBucket,
    ObjectReader,
    OperationCancelledError,
    OperationKind,
    RemoteOperationError,
    ServerSideEncryption,
)

__all__ = [
    "DIR_DELIM",
    "ClientInitError",
    "ConfigValidationError",
    "InvalidRangeError",
    "ObjectBucket",
    "ObjectReader",
    "ObjectStoreError",
    "OperationCancelledError",
    "OperationKind",
    "RemoteOperationError",
    "ServerSideEncryption",
]
