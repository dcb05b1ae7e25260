"""Domain exception to HTTP response mapping."""

import falcon
import falcon.asgi

from hypnos.domain.exceptions import (
    AuthorizationError,
    HypnosError,
    ReentrantCall,
    TransferFailed,
    ValidationError,
)
from hypnos.interfaces.api.middleware.auth import ANONYMOUS


def set_error(resp: falcon.asgi.Response, exc: HypnosError) -> None:
    """Fill ``resp`` for a domain error.

    Authorization failures carry the stable code of the constraint that
    blocked the call.
    """
    if isinstance(exc, AuthorizationError):
        resp.status = falcon.HTTP_403
        resp.media = {"error": exc.code, "detail": str(exc)}
    elif isinstance(exc, ValidationError):
        resp.status = falcon.HTTP_400
        resp.media = {"error": "invalid_request", "detail": str(exc)}
    elif isinstance(exc, TransferFailed):
        resp.status = falcon.HTTP_409
        resp.media = {"error": "transfer_failed", "detail": str(exc)}
    elif isinstance(exc, ReentrantCall):
        resp.status = falcon.HTTP_409
        resp.media = {"error": "reentrant_call", "detail": str(exc)}
    else:
        raise exc


def require_principal(req: falcon.asgi.Request, resp: falcon.asgi.Response):
    """Authenticated principal, or None with a 401 already set."""
    user = getattr(req.context, "user", None)
    if not user or user.user_id == ANONYMOUS:
        resp.status = falcon.HTTP_401
        resp.media = {"error": "Unauthorized"}
        return None
    return user
