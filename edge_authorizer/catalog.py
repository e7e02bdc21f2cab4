"""
Permission catalog loading.

The catalog is a JSON array of permission bindings kept in S3:

    [
      {"abstractName": "admin-orders",
       "resources": ["arn:aws:execute-api:us-east-1:123456789012:abc123/prod/*/orders"]},
      {"abstractName": "read-orders",
       "resources": ["arn:aws:execute-api:us-east-1:123456789012:abc123/prod/GET/orders"]}
    ]

Order matters: the decision engine picks the first binding the caller
holds, so list the more specific or higher-trust permissions first.

The catalog is fetched fresh for every request and never cached or
mutated here.
"""

from pathlib import Path
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)
from pydantic import TypeAdapter, ValidationError

from edge_authorizer.errors import CatalogErrorKind, CatalogLoadError
from edge_authorizer.models import PermissionBinding

_catalog_adapter = TypeAdapter(list[PermissionBinding])


class CatalogStore(Protocol):
    def load(self) -> list[PermissionBinding]: ...


def parse_catalog(raw: str | bytes) -> list[PermissionBinding]:
    """
    Parse and validate a catalog document.

    Raises:
        CatalogLoadError(MALFORMED): invalid JSON, not an array, or any
            binding missing its name or with an empty resource list
    """
    try:
        return _catalog_adapter.validate_json(raw)
    except ValidationError as e:
        raise CatalogLoadError(
            CatalogErrorKind.MALFORMED,
            f"Invalid permission catalog ({e.error_count()} errors): {e}",
        ) from e


class S3CatalogStore:
    """
    Read the catalog document from S3.

    The boto3 client is configured with the per-call timeout and a single
    attempt, so a slow or failing S3 surfaces as a CatalogLoadError instead
    of being retried behind the caller's back.
    """

    def __init__(
        self,
        bucket: str,
        key: str,
        *,
        region: str,
        timeout: float = 5.0,
        client=None,
    ):
        self.bucket = bucket
        self.key = key
        # Uses ambient AWS auth (Lambda execution role, env credentials locally, etc.)
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            config=Config(
                connect_timeout=timeout,
                read_timeout=timeout,
                retries={"total_max_attempts": 1, "mode": "standard"},
            ),
        )

    def load(self) -> list[PermissionBinding]:
        location = f"s3://{self.bucket}/{self.key}"
        try:
            result = self._client.get_object(Bucket=self.bucket, Key=self.key)
            body = result["Body"]
            try:
                raw = body.read()
            finally:
                body.close()
        except (ConnectTimeoutError, ReadTimeoutError) as e:
            raise CatalogLoadError(
                CatalogErrorKind.TIMEOUT, f"Timed out reading catalog from {location}"
            ) from e
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "Unknown")
            raise CatalogLoadError(
                CatalogErrorKind.UNREACHABLE, f"Cannot read catalog from {location}: {code}"
            ) from e
        except BotoCoreError as e:
            raise CatalogLoadError(
                CatalogErrorKind.UNREACHABLE, f"Cannot read catalog from {location}: {e}"
            ) from e

        return parse_catalog(raw)


class FileCatalogStore:
    """Read the catalog document from a local file (development only)."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> list[PermissionBinding]:
        try:
            raw = self.path.read_bytes()
        except OSError as e:
            raise CatalogLoadError(
                CatalogErrorKind.UNREACHABLE, f"Cannot read catalog file {self.path}: {e}"
            ) from e
        return parse_catalog(raw)
