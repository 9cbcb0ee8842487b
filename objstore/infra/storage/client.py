"""Object storage contract shared by bucket implementations.

This module defines the operation kinds, the error taxonomy, the streaming
reader handed back by read operations, and the protocol every bucket
implementation follows to present a flat key space as directories.
"""

from __future__ import annotations

import enum
import io
import threading
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Protocol

from objstore.common.errors import ObjectStoreError

# Delimiter used to model a directory structure in a flat bucket namespace.
DIR_DELIM = "/"


class OperationKind(str, enum.Enum):
    """Remote operations issued against a bucket, used as the metrics label."""

    LIST = "ListBucket"
    GET = "GetObject"
    PUT = "PutObject"
    STAT = "StatObject"
    DELETE = "DeleteObject"

    @property
    def verb(self) -> str:
        return _VERBS[self]


_VERBS = {
    OperationKind.LIST: "list",
    OperationKind.GET: "get",
    OperationKind.PUT: "upload",
    OperationKind.STAT: "stat",
    OperationKind.DELETE: "delete",
}


class ClientInitError(ObjectStoreError):
    """Raised when the storage client cannot be constructed."""


class InvalidRangeError(ObjectStoreError, ValueError):
    """Raised for a malformed byte range, before any request is sent."""

    def __init__(self, offset: int, length: int) -> None:
        self.offset = offset
        self.length = length
        super().__init__(f"invalid range: offset={offset} length={length}")


class RemoteOperationError(ObjectStoreError):
    """Raised when the backend fails an operation on a key."""

    def __init__(self, operation: OperationKind, key: str, cause: object) -> None:
        self.operation = operation
        self.key = key
        noun = "objects" if operation is OperationKind.LIST else "object"
        super().__init__(f"{operation.verb} s3 {noun} {key!r}: {cause}")


class OperationCancelledError(ObjectStoreError):
    """Raised when the caller's cancel event fires during an operation."""

    def __init__(self, operation: OperationKind, key: str) -> None:
        self.operation = operation
        self.key = key
        super().__init__(f"{operation.verb} s3 object {key!r}: cancelled")


def raise_if_cancelled(
    cancel: threading.Event | None, operation: OperationKind, key: str
) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelledError(operation, key)


@dataclass(frozen=True, slots=True)
class ServerSideEncryption:
    """Backend-managed at-rest encryption (SSE-S3)."""

    algorithm: str = "AES256"

    def upload_args(self) -> dict[str, str]:
        return {"ServerSideEncryption": self.algorithm}

    def download_args(self) -> dict[str, str]:
        # Backend-managed keys are applied transparently on reads.
        return {}


class ObjectReader(io.RawIOBase):
    """Readable stream over an object's bytes.

    Ownership of the underlying connection passes to the caller, who must
    close the reader (or use it as a context manager). Bytes are returned
    exactly as stored; no content decoding is applied.
    """

    def __init__(
        self,
        body: Any,
        *,
        key: str,
        cancel: threading.Event | None = None,
    ) -> None:
        super().__init__()
        self._body = body
        self._key = key
        self._cancel = cancel

    @property
    def key(self) -> str:
        return self._key

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed object reader")
        if self._cancel is not None and self._cancel.is_set():
            self.close()
            raise OperationCancelledError(OperationKind.GET, self._key)

        view = memoryview(buffer).cast("B")
        try:
            chunk = self._body.read(len(view))
        except Exception as exc:
            raise RemoteOperationError(OperationKind.GET, self._key, exc) from exc

        size = len(chunk)
        view[:size] = chunk
        return size

    def close(self) -> None:
        if not self.closed:
            try:
                self._body.close()
            finally:
                super().close()


IterCallback = Callable[[str], None]


class ObjectBucket(Protocol):
    """Protocol for a bucket presenting flat keys with directory semantics.

    Every operation counts exactly one attempt against its operation kind and
    accepts an optional ``cancel`` event. Implementations hold no per-call
    state and may be shared between threads.
    """

    @property
    def name(self) -> str:
        """Name of the bucket all operations target."""
        ...

    def iter(
        self,
        dir: str,
        f: IterCallback,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Call ``f`` for each entry directly under ``dir``.

        Args:
            dir: Directory to list. Trailing delimiters are normalized to one.
            f: Called with the full key (or sub-directory prefix ending in
                ``DIR_DELIM``) of every entry.
            cancel: Event that aborts the listing when set.

        Raises:
            Exception: Whatever ``f`` raised, unchanged.
            OperationCancelledError: If ``cancel`` fired.
            RemoteOperationError: If the listing fails.
        """
        ...

    def get(
        self, name: str, *, cancel: threading.Event | None = None
    ) -> ObjectReader:
        """Return a reader over the full object.

        Raises:
            RemoteOperationError: If the object is missing or the read fails.
        """
        ...

    def get_range(
        self,
        name: str,
        offset: int,
        length: int,
        *,
        cancel: threading.Event | None = None,
    ) -> ObjectReader:
        """Return a reader over bytes ``[offset, offset + length)``.

        A zero ``length`` returns an empty reader.

        Raises:
            InvalidRangeError: If ``offset`` or ``length`` is negative.
            RemoteOperationError: If the object is missing or the read fails.
        """
        ...

    def exists(self, name: str, *, cancel: threading.Event | None = None) -> bool:
        """Report whether the object exists.

        Returns:
            False only when the backend confirms the key is absent.

        Raises:
            RemoteOperationError: For any failure other than "no such key".
        """
        ...

    def upload(
        self,
        name: str,
        source: BinaryIO,
        *,
        cancel: threading.Event | None = None,
    ) -> None:
        """Store the full contents of ``source`` under ``name``.

        Raises:
            RemoteOperationError: If the upload fails; no bytes may be assumed
                stored.
        """
        ...

    def delete(self, name: str, *, cancel: threading.Event | None = None) -> None:
        """Remove the object.

        Raises:
            RemoteOperationError: If the backend rejects the delete.
        """
        ...

    def close(self) -> None:
        """Release the client's connections."""
        ...
