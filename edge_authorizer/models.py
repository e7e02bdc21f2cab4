"""
Data types shared by the decision engine, the policy builder and the handler.

- PermissionBinding: one catalog entry, an abstract permission name mapped to
  the API Gateway resource ARNs it authorizes. Parsed from the catalog JSON
  with pydantic so a bad document fails loudly at load time.
- AuthorizationContext: the verdict of token validation.
- Decision: the engine's output.
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PermissionBinding(BaseModel):
    """
    A named permission and the resources it grants.

    JSON shape:
        {"abstractName": "read-orders",
         "resources": ["arn:aws:execute-api:us-east-1:123456789012:abc123/prod/GET/orders"]}

    `resources` must be non-empty: a binding that grants nothing cannot be
    selected, so a catalog containing one is rejected as malformed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    abstract_name: str = Field(alias="abstractName", min_length=1)
    resources: tuple[str, ...] = Field(min_length=1)


@dataclass(frozen=True)
class AuthorizationContext:
    """
    Result of validating a bearer token.

    Attributes:
        caller_identity: Opaque identity of the caller ("sub" claim or the
                         introspection equivalent). Empty when inactive.
        is_active: Whether the token is live. Inactive is an authoritative
                   denial, not an error.
    """

    caller_identity: str
    is_active: bool


class Effect(str, Enum):
    ALLOW = "Allow"
    DENY = "Deny"


@dataclass(frozen=True)
class Decision:
    """
    The verdict of the decision engine.

    `resources` is exactly the selected binding's resources on ALLOW and
    empty otherwise. `permission` names the selected binding.
    """

    effect: Effect
    resources: tuple[str, ...] = ()
    permission: str | None = None
