"""Auth middleware - extracts the principal from a bearer token or allows anonymous."""

from dataclasses import dataclass

import falcon.asgi

from hypnos.domain.value_objects import normalize_identifier

ANONYMOUS = "anonymous"


@dataclass
class RequestUser:
    """Principal from request context."""

    user_id: str
    email: str | None = None
    username: str | None = None


class AuthMiddleware:
    """Middleware that validates tokens and sets req.context.user.

    Without a Keycloak provider (development), the ``X-Principal`` header
    names the caller directly.
    """

    def __init__(self, keycloak_provider=None) -> None:
        self._keycloak = keycloak_provider

    async def process_request(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response
    ) -> None:
        """Extract principal from Authorization header."""
        auth = req.get_header("Authorization")
        if auth and auth.startswith("Bearer "):
            token = auth[7:]
            if self._keycloak:
                user = self._keycloak.decode_token(token)
                if user:
                    req.context.user = RequestUser(
                        user_id=normalize_identifier(user.user_id),
                        email=user.email,
                        username=user.username,
                    )
                    return
            req.context.user = None
            return

        principal = req.get_header("X-Principal")
        if principal and self._keycloak is None:
            req.context.user = RequestUser(user_id=normalize_identifier(principal))
        else:
            req.context.user = RequestUser(user_id=ANONYMOUS)
