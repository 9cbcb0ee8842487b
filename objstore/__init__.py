"""Directory-style access to S3-compatible object storage.

Logging is configured by the host application; call ``setup_logging()`` to
install the package's JSON console handler and startup logger.
"""

from objstore.common.config import Config, SignatureVersion
from objstore.common.errors import ConfigValidationError, ObjectStoreError
from objstore.common.logging import setup_logging
from objstore.infra.storage.client import (
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
from objstore.infra.storage.s3_client import (
    S3Bucket,
    TransportPolicy,
    new_bucket,
)

__version__ = "0.1.0"

__all__ = [
    "DIR_DELIM",
    "ClientInitError",
    "Config",
    "ConfigValidationError",
    "InvalidRangeError",
    "ObjectBucket",
    "ObjectReader",
    "ObjectStoreError",
    "OperationCancelledError",
    "OperationKind",
    "RemoteOperationError",
    "S3Bucket",
    "ServerSideEncryption",
    "SignatureVersion",
    "TransportPolicy",
    "new_bucket",
    "setup_logging",
]
