import hashlib

from fastapi import Header, Request

from imagine_gateway.gateway.gateway import ImageGateway


def get_gateway(request: Request) -> ImageGateway:
    """The process-wide gateway built in the app lifespan."""
    return request.app.state.gateway


def get_provider_key(
    x_provider_key: str | None = Header(None, description="User-supplied provider API key"),
) -> str | None:
    return x_provider_key or None


def get_subject_key(
    authorization: str | None = Header(None, description="Bearer <token>"),
) -> str | None:
    """Rate-limit subject derived from the opaque session token.

    The token is not validated here; it is only hashed so that each session
    gets its own sliding window without the raw token being kept anywhere.
    """
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[7:].strip()
    if not token:
        return None
    return "session:" + hashlib.sha256(token.encode()).hexdigest()[:16]
