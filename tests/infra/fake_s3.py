"""In-memory stand-in for a boto3 S3 client used by bucket tests."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from botocore.exceptions import ClientError


def client_error(code: str, operation: str, message: str = "") -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": message or code}}, operation
    )


class FakeBody(io.BytesIO):
    """Streaming body returned by get_object."""


@dataclass
class FakePaginator:
    client: "FakeS3Client"

    def paginate(
        self, *, Bucket: str, Prefix: str = "", Delimiter: str = ""
    ) -> Iterator[dict[str, Any]]:
        self.client.calls.append(
            ("list_objects_v2", {"Bucket": Bucket, "Prefix": Prefix, "Delimiter": Delimiter})
        )
        return self.client._pages(Bucket, Prefix, Delimiter)


@dataclass
class FakeS3Client:
    """Flat key store mimicking the S3 calls made by S3Bucket."""

    bucket: str = "test-bucket"
    objects: dict[str, bytes] = field(default_factory=dict)
    page_size: int = 1000
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    closed: bool = False
    # Extra raw entries appended to the first listing page.
    extra_listing_entries: list[dict[str, Any]] = field(default_factory=list)
    on_page: Callable[[int], None] | None = None

    def _check_bucket(self, bucket: str, operation: str) -> None:
        if bucket != self.bucket:
            raise client_error("NoSuchBucket", operation)

    def _pages(
        self, bucket: str, prefix: str, delimiter: str
    ) -> Iterator[dict[str, Any]]:
        self._check_bucket(bucket, "ListObjectsV2")
        entries: list[tuple[str, bool]] = []
        seen_prefixes: set[str] = set()
        for key in sorted(self.objects):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                common = prefix + rest.split(delimiter, 1)[0] + delimiter
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    entries.append((common, True))
            else:
                entries.append((key, False))

        chunks = [
            entries[i:i + self.page_size]
            for i in range(0, len(entries), self.page_size)
        ] or [[]]
        for number, chunk in enumerate(chunks):
            if self.on_page is not None:
                self.on_page(number)
            page: dict[str, Any] = {
                "Contents": [{"Key": key} for key, is_prefix in chunk if not is_prefix],
                "CommonPrefixes": [
                    {"Prefix": key} for key, is_prefix in chunk if is_prefix
                ],
            }
            if number == 0 and self.extra_listing_entries:
                page["Contents"] = self.extra_listing_entries + page["Contents"]
            yield page

    def get_paginator(self, operation_name: str) -> FakePaginator:
        assert operation_name == "list_objects_v2"
        return FakePaginator(self)

    def get_object(self, *, Bucket: str, Key: str, **params: Any) -> dict[str, Any]:
        self.calls.append(("get_object", {"Bucket": Bucket, "Key": Key, **params}))
        self._check_bucket(Bucket, "GetObject")
        if Key not in self.objects:
            raise client_error("NoSuchKey", "GetObject")
        data = self.objects[Key]
        byte_range = params.get("Range")
        if byte_range:
            start, end = byte_range.removeprefix("bytes=").split("-")
            data = data[int(start):int(end) + 1]
        return {"Body": FakeBody(data), "ContentLength": len(data)}

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self.calls.append(("head_object", {"Bucket": Bucket, "Key": Key}))
        self._check_bucket(Bucket, "HeadObject")
        if Key not in self.objects:
            raise client_error("404", "HeadObject", "Not Found")
        return {"ContentLength": len(self.objects[Key])}

    def upload_fileobj(
        self,
        Fileobj: Any,
        Bucket: str,
        Key: str,
        ExtraArgs: dict[str, Any] | None = None,
        Callback: Callable[[int], None] | None = None,
        Config: Any = None,
    ) -> None:
        self.calls.append(
            ("upload_fileobj", {"Bucket": Bucket, "Key": Key, "ExtraArgs": ExtraArgs})
        )
        self._check_bucket(Bucket, "PutObject")
        buffer = bytearray()
        while True:
            chunk = Fileobj.read(4096)
            if not chunk:
                break
            buffer.extend(chunk)
            if Callback is not None:
                Callback(len(chunk))
        self.objects[Key] = bytes(buffer)

    def delete_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        self.calls.append(("delete_object", {"Bucket": Bucket, "Key": Key}))
        self._check_bucket(Bucket, "DeleteObject")
        self.objects.pop(Key, None)
        return {}

    def close(self) -> None:
        self.closed = True
