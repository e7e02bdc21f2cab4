"""
Unit tests for catalog loading (edge_authorizer/catalog.py).

S3 is replaced by an in-memory fake client that records its calls; the
failure modes are the exceptions botocore itself raises.
"""

import io
import json

import pytest
from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from edge_authorizer.catalog import FileCatalogStore, S3CatalogStore, parse_catalog
from edge_authorizer.errors import CatalogErrorKind, CatalogLoadError
from edge_authorizer.models import PermissionBinding
from tests.fakes import ARN_PREFIX

CATALOG = [
    {"abstractName": "admin-orders", "resources": [f"{ARN_PREFIX}/*/orders"]},
    {
        "abstractName": "read-orders",
        "resources": [f"{ARN_PREFIX}/GET/orders", f"{ARN_PREFIX}/GET/orders/*"],
    },
]


class _FakeS3Client:
    """Fake boto3 S3 client serving a single object or raising an error."""

    def __init__(self, body: bytes = b"", error: Exception | None = None):
        self.body = body
        self.error = error
        self.calls = []

    def get_object(self, **kwargs):
        self.calls.append(("get_object", kwargs))
        if self.error is not None:
            raise self.error
        return {"Body": io.BytesIO(self.body)}


def s3_store(client: _FakeS3Client) -> S3CatalogStore:
    return S3CatalogStore(
        "perm-bucket", "authorizer/permissions.json", region="us-east-1", client=client
    )


class TestParseCatalog:
    def test_bindings_are_parsed_in_order(self):
        bindings = parse_catalog(json.dumps(CATALOG))

        assert [b.abstract_name for b in bindings] == ["admin-orders", "read-orders"]
        assert bindings[1].resources == (f"{ARN_PREFIX}/GET/orders", f"{ARN_PREFIX}/GET/orders/*")

    def test_empty_array_is_an_empty_catalog(self):
        assert parse_catalog("[]") == []

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            '{"abstractName": "read", "resources": ["r"]}',
            '[{"resources": ["r"]}]',
            '[{"abstractName": "", "resources": ["r"]}]',
            '[{"abstractName": "read", "resources": []}]',
            '[{"abstractName": "read", "resources": "r"}]',
        ],
        ids=[
            "not-json",
            "not-array",
            "no-name",
            "empty-name",
            "no-resources",
            "resources-not-list",
        ],
    )
    def test_invalid_documents_are_malformed(self, raw):
        with pytest.raises(CatalogLoadError) as exc_info:
            parse_catalog(raw)

        assert exc_info.value.kind is CatalogErrorKind.MALFORMED

    def test_bindings_are_immutable(self):
        binding = parse_catalog(json.dumps(CATALOG))[0]

        with pytest.raises(Exception):
            binding.abstract_name = "changed"

    def test_binding_accepts_python_field_names(self):
        binding = PermissionBinding(abstract_name="read", resources=["r1"])

        assert binding.resources == ("r1",)


class TestS3CatalogStore:
    def test_catalog_is_read_from_bucket_and_key(self):
        client = _FakeS3Client(body=json.dumps(CATALOG).encode())

        bindings = s3_store(client).load()

        assert len(bindings) == 2
        assert client.calls == [
            ("get_object", {"Bucket": "perm-bucket", "Key": "authorizer/permissions.json"})
        ]

    def test_catalog_is_fetched_fresh_on_every_load(self):
        client = _FakeS3Client(body=json.dumps(CATALOG).encode())
        store = s3_store(client)

        store.load()
        store.load()

        assert len(client.calls) == 2

    def test_missing_object_is_unreachable(self):
        error = ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")

        with pytest.raises(CatalogLoadError) as exc_info:
            s3_store(_FakeS3Client(error=error)).load()

        assert exc_info.value.kind is CatalogErrorKind.UNREACHABLE
        assert "NoSuchKey" in exc_info.value.message

    def test_connection_failure_is_unreachable(self):
        error = EndpointConnectionError(endpoint_url="https://s3.us-east-1.amazonaws.com")

        with pytest.raises(CatalogLoadError) as exc_info:
            s3_store(_FakeS3Client(error=error)).load()

        assert exc_info.value.kind is CatalogErrorKind.UNREACHABLE

    def test_read_timeout_is_timeout(self):
        error = ReadTimeoutError(endpoint_url="https://s3.us-east-1.amazonaws.com")

        with pytest.raises(CatalogLoadError) as exc_info:
            s3_store(_FakeS3Client(error=error)).load()

        assert exc_info.value.kind is CatalogErrorKind.TIMEOUT

    def test_invalid_document_is_malformed(self):
        with pytest.raises(CatalogLoadError) as exc_info:
            s3_store(_FakeS3Client(body=b"{oops")).load()

        assert exc_info.value.kind is CatalogErrorKind.MALFORMED

    def test_default_client_uses_region_timeout_and_single_attempt(self):
        store = S3CatalogStore("perm-bucket", "permissions.json", region="eu-west-1", timeout=2.5)

        config = store._client.meta.config
        assert store._client.meta.region_name == "eu-west-1"
        assert config.read_timeout == 2.5
        assert config.connect_timeout == 2.5
        assert config.retries["total_max_attempts"] == 1


class TestFileCatalogStore:
    def test_catalog_is_read_from_file(self, tmp_path):
        path = tmp_path / "permissions.json"
        path.write_text(json.dumps(CATALOG))

        bindings = FileCatalogStore(path).load()

        assert [b.abstract_name for b in bindings] == ["admin-orders", "read-orders"]

    def test_missing_file_is_unreachable(self, tmp_path):
        with pytest.raises(CatalogLoadError) as exc_info:
            FileCatalogStore(tmp_path / "absent.json").load()

        assert exc_info.value.kind is CatalogErrorKind.UNREACHABLE
