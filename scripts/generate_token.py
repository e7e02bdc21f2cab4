"""
CLI utility to mint JWTs for running the authorizer locally.

In production the authorizer asks the identity provider's introspection
endpoint whether a token is active. For local development set
AUTHORIZER_TOKEN_VALIDATOR=jwt and mint tokens here; the authorizer then
verifies them with the shared secret.

Usage examples:

    # Token for alice, valid for 8 hours (default secret)
    python scripts/generate_token.py --sub alice

    # Expired token (for testing the Unauthorized path)
    python scripts/generate_token.py --sub alice --exp-hours -1

    # Custom secret (must match AUTHORIZER_JWT_SECRET_KEY)
    python scripts/generate_token.py --sub alice --secret my-secret

The script prints the token and a ready-to-use curl call against the local
server started with `python -m edge_authorizer.server`.
"""

import argparse
import datetime
import json

import jwt

DEFAULT_METHOD_ARN = "arn:aws:execute-api:us-east-1:123456789012:abc123/prod/GET/orders"


def generate_token(
    subject: str,
    secret: str,
    algorithm: str = "HS256",
    exp_hours: float = 8.0,
    issuer: str | None = None,
    audience: str | None = None,
) -> str:
    """Generate a signed JWT with sub, iat and exp (plus iss / aud when given)."""
    now = datetime.datetime.now(datetime.timezone.utc)

    payload = {
        "sub": subject,
        "iat": now,
        "exp": now + datetime.timedelta(hours=exp_hours),
    }
    if issuer:
        payload["iss"] = issuer
    if audience:
        payload["aud"] = audience

    return jwt.encode(payload, secret, algorithm=algorithm)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate JWTs for the edge authorizer's local jwt validation mode.",
    )
    parser.add_argument("--sub", required=True, help="Subject claim (caller identity)")
    parser.add_argument(
        "--secret",
        default="dev-secret-change-me",
        help="Signing secret (must match AUTHORIZER_JWT_SECRET_KEY)",
    )
    parser.add_argument("--algorithm", default="HS256", help="JWT signing algorithm")
    parser.add_argument(
        "--exp-hours",
        type=float,
        default=8.0,
        help="Hours until the token expires (negative = already expired)",
    )
    parser.add_argument("--issuer", help="Optional iss claim")
    parser.add_argument("--audience", help="Optional aud claim")
    parser.add_argument(
        "--method-arn", default=DEFAULT_METHOD_ARN, help="methodArn for the sample event"
    )

    args = parser.parse_args()

    token = generate_token(
        subject=args.sub,
        secret=args.secret,
        algorithm=args.algorithm,
        exp_hours=args.exp_hours,
        issuer=args.issuer,
        audience=args.audience,
    )
    event = {"type": "TOKEN", "authorizationToken": f"Bearer {token}", "methodArn": args.method_arn}

    print(f"Subject:    {args.sub}")
    print(f"Algorithm:  {args.algorithm}")
    print()
    print(f"Token: {token}")
    print()
    print("Authorizer event:")
    print(json.dumps(event, indent=2))
    print()
    print("Usage with curl (local server):")
    print("  curl -X POST http://localhost:8080/authorize \\")
    print('    -H "Content-Type: application/json" \\')
    print(f"    -d '{json.dumps(event)}'")


if __name__ == "__main__":
    main()
