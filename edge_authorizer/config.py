"""
Authorizer configuration loaded from environment variables.

Uses pydantic-settings to define typed configuration that automatically reads
from environment variables. All config comes from the environment (or a local
.env file), never hardcoded in source code.

In production (Lambda), these are set on the function configuration:
- AUTHORIZER_CATALOG_STORE_REGION, AUTHORIZER_CATALOG_BUCKET and
  AUTHORIZER_CATALOG_KEY locate the permission catalog in S3
- AUTHORIZER_INTROSPECTION_* point at the OAuth introspection endpoint
- AUTHORIZER_CAPABILITY_CHECK_URL points at the capability check service

Settings are built once at the entry point and handed to the component
factories in `edge_authorizer.handler`; components never read settings
themselves, so tests can construct them with fakes directly.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Authorizer configuration with environment variable bindings.

    Each field maps to an environment variable with the AUTHORIZER_ prefix.
    For example, `catalog_bucket` reads from AUTHORIZER_CATALOG_BUCKET.
    """

    # --- Permission catalog ---

    # Region of the S3 bucket holding the catalog document.
    catalog_store_region: str = "us-east-1"

    # S3 bucket and object key of the catalog. When no bucket is set the
    # catalog is read from `catalog_path` instead (local development).
    catalog_bucket: str | None = None
    catalog_key: str = "permissions.json"
    catalog_path: Path | None = None

    # --- Token validation ---

    # "introspection" calls an OAuth 2.0 introspection endpoint (RFC 7662).
    # "jwt" verifies self-contained HS256 tokens locally with a shared secret.
    token_validator: Literal["introspection", "jwt"] = "introspection"

    introspection_url: str | None = None
    introspection_client_id: str | None = None
    introspection_client_secret: str | None = None

    # Default is for local development only - NEVER use this in production.
    jwt_secret_key: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str | None = None
    jwt_audience: str | None = None

    # --- Capability checks ---

    # "http" asks the capability check service; "static" reads a JSON file
    # mapping caller identity -> list of permission names.
    checker_backend: Literal["http", "static"] = "http"
    capability_check_url: str | None = None
    static_grants_path: Path | None = None

    # What to do when a single capability check fails: "skip" treats that
    # binding as not matching, "fail" rejects the whole request.
    check_error_policy: Literal["skip", "fail"] = "skip"

    # Number of capability checks issued concurrently. 1 = sequential.
    check_concurrency: int = 1

    # Per-call timeout for the catalog fetch and both adapter calls.
    request_timeout_seconds: float = 5.0

    # --- Local HTTP server ---

    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "info"

    model_config = {
        "env_prefix": "AUTHORIZER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process settings, read from the environment on first use."""
    return Settings()
