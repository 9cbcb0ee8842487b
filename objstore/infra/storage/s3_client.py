"""S3-compatible bucket implementation.

This module adapts an S3-compatible API (AWS S3, MinIO, Ceph RGW, ...) to the
``ObjectBucket`` contract: directory-style listing over a flat key space,
full and ranged reads, existence checks, streamed uploads and deletes.

Dependencies:
    - boto3
    - botocore
    - prometheus_client
"""

from __future__ import annotations

import io
import logging
import platform
import threading
from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version
from typing import Any, BinaryIO, Callable, Iterator

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError
from prometheus_client import CollectorRegistry, Counter

from objstore.common.config import Config, SignatureVersion
from objstore.infra.observability.metrics import bucket_operations_counter
from objstore.infra.storage.client import (
    DIR_DELIM,
    ClientInitError,
    InvalidRangeError,
    IterCallback,
    ObjectReader,
    OperationCancelledError,
    OperationKind,
    RemoteOperationError,
    ServerSideEncryption,
    raise_if_cancelled,
)

logger = logging.getLogger(__name__)
startup_logger = logging.getLogger("objstore.startup")

# botocore signer names for each signature scheme.
SIGNERS = {
    SignatureVersion.V2: "s3",
    SignatureVersion.V4: "s3v4",
}

# Error codes S3-compatible servers use for a missing key. HEAD responses carry
# no body, so botocore reports the bare status there.
NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})

# Uploads run on the calling thread; the transfer manager still switches to
# multipart for large streams.
UPLOAD_TRANSFER_CONFIG = TransferConfig(use_threads=False)


@dataclass(frozen=True, slots=True)
class TransportPolicy:
    """Connection and timeout policy installed on every client.

    Only settings botocore's client config accepts are carried here. Idle
    connection expiry, the TLS handshake deadline, dual-stack dialing, the
    100-continue wait and response decompression are not configurable through
    botocore; its HTTP layer never decodes response bodies and leaves the
    rest to urllib3.
    """

    dial_timeout: float = 30.0
    keep_alive: float = 30.0
    max_idle_conns: int = 100
    # Covers connections that succeed while the server never answers.
    response_header_timeout: float = 15.0

    def client_config(
        self,
        *,
        signature_version: str,
        addressing_style: str,
        user_agent_extra: str,
    ) -> BotoConfig:
        return BotoConfig(
            signature_version=signature_version,
            connect_timeout=self.dial_timeout,
            read_timeout=self.response_header_timeout,
            max_pool_connections=self.max_idle_conns,
            tcp_keepalive=self.keep_alive > 0,
            user_agent_extra=user_agent_extra,
            s3={"addressing_style": addressing_style},
        )


DEFAULT_TRANSPORT_POLICY = TransportPolicy()


def app_info(component: str) -> str:
    name = f"objstore-{component}" if component else "objstore"
    try:
        release = version("objstore")
    except PackageNotFoundError:
        # Running from a source checkout that was never installed.
        release = "unknown"
    return f"{name}/{release} (Python {platform.python_version()})"


def build_client(
    config: Config,
    component: str = "",
    policy: TransportPolicy = DEFAULT_TRANSPORT_POLICY,
) -> Any:
    """Create a boto3 S3 client for ``config``.

    Raises:
        ClientInitError: If botocore rejects the endpoint or settings.
    """
    client_config = policy.client_config(
        signature_version=SIGNERS[config.signature_version],
        addressing_style=config.addressing_style,
        user_agent_extra=app_info(component),
    )
    try:
        return boto3.client(
            "s3",
            endpoint_url=config.endpoint_url(),
            region_name=config.region,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            use_ssl=config.use_ssl,
            config=client_config,
        )
    except Exception as exc:
        raise ClientInitError(f"initialize s3 client: {exc}") from exc


def new_bucket(
    config: Config,
    registry: CollectorRegistry | None = None,
    component: str = "",
) -> "S3Bucket":
    """Return a bucket for the given configuration.

    No request is sent to the store. When ``registry`` is given, the
    operation counter is registered with it.

    Raises:
        ConfigValidationError: If a required setting is missing.
        ClientInitError: If the client cannot be constructed.
    """
    config.validate()
    client = build_client(config, component)
    sse = ServerSideEncryption() if config.sse_encryption else None
    ops_total = bucket_operations_counter(
        config.bucket, [op.value for op in OperationKind], registry
    )

    startup_logger.info(
        "s3 bucket ready bucket=%s endpoint=%s signature=%s sse=%s",
        config.bucket,
        config.endpoint_url(),
        config.signature_version.value,
        sse is not None,
    )
    return S3Bucket(bucket=config.bucket, client=client, ops_total=ops_total, sse=sse)


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def _cancel_callback(
    cancel: threading.Event | None, key: str
) -> Callable[[int], None] | None:
    if cancel is None:
        return None

    def check(_transferred: int) -> None:
        raise_if_cancelled(cancel, OperationKind.PUT, key)

    return check


class S3Bucket:
    """Bucket backed by an S3-compatible API.

    Holds no per-call state: the client, its connection pool and the
    operation counter are shared by all callers, so one instance may be used
    from many threads.
    """

    def __init__(
        self,
        *,
        bucket: str,
        client: Any,
        ops_total: Counter,
        sse: ServerSideEncryption | None = None,
    ) -> None:
        self._bucket = bucket
        self._client = client
        self._ops_total = ops_total
        self._sse = sse

    def __repr__(self) -> str:
        return f"S3Bucket(name={self._bucket!r}, sse={self._sse is not None})"

    def __enter__(self) -> "S3Bucket":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def name(self) -> str:
        return self._bucket

    @property
    def sse(self) -> ServerSideEncryption | None:
        return self._sse

    def _count(self, operation: OperationKind) -> None:
        self._ops_total.labels(self._bucket, operation.value).inc()

    def _remote_error(
        self, operation: OperationKind, key: str, exc: Exception
    ) -> RemoteOperationError:
        logger.warning(
            "s3 operation failed bucket=%s operation=%s key=%s",
            self._bucket,
            operation.value,
            key,
            extra={
                "extra": {
                    "bucket": self._bucket,
                    "operation": operation.value,
                    "key": key,
                    "error": repr(exc),
                }
            },
        )
        return RemoteOperationError(operation, key, exc)

    def iter(
        self,
        dir: str,
        f: IterCallback,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Call ``f`` with the full key of every entry directly under ``dir``.

        Sub-directories are reported as their prefix, ending in ``DIR_DELIM``.
        Whatever ``f`` raises stops the listing and propagates unchanged.
        """
        self._count(OperationKind.LIST)
        # Without the trailing delimiter the name itself would be listed as a
        # single prefix entry instead of its contents.
        if dir:
            dir = dir.rstrip(DIR_DELIM) + DIR_DELIM

        for key in self._list_entries(dir, cancel):
            raise_if_cancelled(cancel, OperationKind.LIST, dir)
            f(key)

    def _list_entries(
        self, prefix: str, cancel: threading.Event | None
    ) -> Iterator[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        pages = iter(
            paginator.paginate(
                Bucket=self._bucket, Prefix=prefix, Delimiter=DIR_DELIM
            )
        )
        while True:
            raise_if_cancelled(cancel, OperationKind.LIST, prefix)
            try:
                page = next(pages)
            except StopIteration:
                return
            except Exception as exc:
                raise self._remote_error(OperationKind.LIST, prefix, exc) from exc

            for entry in page.get("Contents", ()):
                # Empty buckets on some servers report an entry without a key.
                if entry.get("Key"):
                    yield entry["Key"]
            for entry in page.get("CommonPrefixes", ()):
                if entry.get("Prefix"):
                    yield entry["Prefix"]

    def get(
        self, name: str, *, cancel: threading.Event | None = None
    ) -> ObjectReader:
        """Return a reader over the whole object. The caller must close it."""
        self._count(OperationKind.GET)
        return self._get_object(name, cancel)

    def get_range(
        self,
        name: str,
        offset: int,
        length: int,
        *,
        cancel: threading.Event | None = None,
    ) -> ObjectReader:
        """Return a reader over bytes ``[offset, offset + length)``.

        A zero ``length`` yields an empty reader without contacting the store.
        """
        self._count(OperationKind.GET)
        if offset < 0 or length < 0:
            raise InvalidRangeError(offset, length)
        if length == 0:
            raise_if_cancelled(cancel, OperationKind.GET, name)
            return ObjectReader(io.BytesIO(b""), key=name, cancel=cancel)
        # HTTP ranges are inclusive of the last byte.
        return self._get_object(
            name, cancel, Range=f"bytes={offset}-{offset + length - 1}"
        )

    def _get_object(
        self, name: str, cancel: threading.Event | None, **params: Any
    ) -> ObjectReader:
        raise_if_cancelled(cancel, OperationKind.GET, name)
        if self._sse is not None:
            params.update(self._sse.download_args())
        try:
            response = self._client.get_object(
                Bucket=self._bucket, Key=name, **params
            )
        except Exception as exc:
            raise self._remote_error(OperationKind.GET, name, exc) from exc
        return ObjectReader(response["Body"], key=name, cancel=cancel)

    def exists(self, name: str, *, cancel: threading.Event | None = None) -> bool:
        """Return False only when the store confirms ``name`` is absent."""
        self._count(OperationKind.STAT)
        raise_if_cancelled(cancel, OperationKind.STAT, name)
        try:
            self._client.head_object(Bucket=self._bucket, Key=name)
        except ClientError as exc:
            if _error_code(exc) in NOT_FOUND_CODES:
                return False
            raise self._remote_error(OperationKind.STAT, name, exc) from exc
        except Exception as exc:
            raise self._remote_error(OperationKind.STAT, name, exc) from exc
        return True

    def upload(
        self,
        name: str,
        source: BinaryIO,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Stream ``source`` of unknown length into ``name``, replacing it."""
        self._count(OperationKind.PUT)
        raise_if_cancelled(cancel, OperationKind.PUT, name)
        extra_args = self._sse.upload_args() if self._sse is not None else None
        try:
            self._client.upload_fileobj(
                source,
                self._bucket,
                name,
                ExtraArgs=extra_args,
                Callback=_cancel_callback(cancel, name),
                Config=UPLOAD_TRANSFER_CONFIG,
            )
        except OperationCancelledError:
            raise
        except Exception as exc:
            if cancel is not None and cancel.is_set():
                raise OperationCancelledError(OperationKind.PUT, name) from exc
            raise self._remote_error(OperationKind.PUT, name, exc) from exc

    def delete(self, name: str, *, cancel: threading.Event | None = None) -> None:
        """Remove ``name``. A missing key is whatever the backend reports."""
        self._count(OperationKind.DELETE)
        raise_if_cancelled(cancel, OperationKind.DELETE, name)
        try:
            self._client.delete_object(Bucket=self._bucket, Key=name)
        except Exception as exc:
            raise self._remote_error(OperationKind.DELETE, name, exc) from exc

    def close(self) -> None:
        self._client.close()
