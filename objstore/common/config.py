from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from typing import Mapping

from objstore.common.errors import ConfigValidationError


class SignatureVersion(str, enum.Enum):
    """Request signing scheme used against the S3 API."""

    V2 = "v2"
    V4 = "v4"


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


@dataclass(frozen=True)
class Config:
    """Connection parameters for an S3-compatible bucket."""

    bucket: str = ""
    endpoint: str = ""
    access_key: str = ""
    secret_key: str = field(default="", repr=False)
    insecure: bool = False
    signature_version: SignatureVersion = SignatureVersion.V4
    sse_encryption: bool = False
    region: str = "us-east-1"
    addressing_style: str = "path"

    @property
    def use_ssl(self) -> bool:
        return not self.insecure

    def validate(self) -> None:
        """Raise ConfigValidationError unless all required values are set."""
        if (
            self.bucket == ""
            or self.endpoint == ""
            or self.access_key == ""
            or self.secret_key == ""
        ):
            raise ConfigValidationError("insufficient s3 configuration information")

    def endpoint_url(self) -> str:
        # Bare host[:port] endpoints get a scheme matching the TLS mode.
        if "://" in self.endpoint:
            return self.endpoint
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{self.endpoint}"

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> "Config":
        env = os.environ if environ is None else environ
        signature_version = (
            SignatureVersion.V2
            if _as_bool(env.get("S3_SIGNATURE_VERSION2"), False)
            else SignatureVersion.V4
        )
        return cls(
            bucket=env.get("S3_BUCKET", cls.bucket),
            endpoint=env.get("S3_ENDPOINT", cls.endpoint),
            access_key=env.get("S3_ACCESS_KEY", cls.access_key),
            # The secret key is only ever read from the environment.
            secret_key=env.get("S3_SECRET_KEY", cls.secret_key),
            insecure=_as_bool(env.get("S3_INSECURE"), cls.insecure),
            signature_version=signature_version,
            sse_encryption=_as_bool(env.get("S3_SSE_ENCRYPTION"), cls.sse_encryption),
            region=env.get("S3_REGION") or cls.region,
            addressing_style=(
                env.get("S3_ADDRESSING_STYLE") or cls.addressing_style
            ).strip().lower(),
        )
