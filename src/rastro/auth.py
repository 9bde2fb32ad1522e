import secrets

from fastapi import HTTPException, Request

from rastro.config import settings
from rastro.errors import AuthError


def check_webhook_secret(authorization: str | None) -> None:
    """Raise AuthError unless the header carries ``Bearer <webhook secret>``."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise AuthError("Missing bearer token")
    expected = (settings.webhook_secret or "").encode()
    if not secrets.compare_digest(token.strip().encode(), expected):
        raise AuthError("Invalid bearer token")


def verify_webhook_auth(request: Request) -> None:
    """Dependency to verify the webhook sender knows the shared secret."""
    if not settings.webhook_secret:
        raise HTTPException(status_code=500, detail="Webhook secret is not configured")
    try:
        check_webhook_secret(request.headers.get("Authorization"))
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
