"""
IAM policy documents for API Gateway authorizer responses.

API Gateway evaluates the returned document against the method ARN of the
incoming request. The document always has the same shape: one statement,
one action (execute-api:Invoke), the given effect and resource list.
"""

from typing import Any, Iterable

from edge_authorizer.models import Effect

# IAM policy language version. Fixed; API Gateway rejects anything else.
POLICY_VERSION = "2012-10-17"

INVOKE_ACTION = "execute-api:Invoke"


def build_policy(effect: Effect | str, resources: Iterable[str]) -> dict[str, Any]:
    """
    Build the policy document for an authorizer response.

    Pure: equal inputs give equal documents, and every call returns fresh
    containers. Does not check that `resources` is non-empty; callers only
    pass the resources of a selected binding, which never are.
    """
    return {
        "Version": POLICY_VERSION,
        "Statement": [
            {
                "Action": [INVOKE_ACTION],
                "Effect": Effect(effect).value,
                "Resource": list(resources),
            }
        ],
    }


def build_auth_response(
    principal_id: str,
    policy_document: dict[str, Any],
    context: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Wrap a policy document in the API Gateway authorizer response shape."""
    response: dict[str, Any] = {
        "principalId": principal_id,
        "policyDocument": policy_document,
    }
    if context:
        response["context"] = dict(context)
    return response
