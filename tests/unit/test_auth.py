"""Unit tests for Keycloak token decoding and the auth middleware."""

from dataclasses import fields
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from keycloak.exceptions import KeycloakError

from hypnos.infrastructure.auth.keycloak_provider import KeycloakProvider, OIDCUser
from hypnos.interfaces.api.middleware.auth import ANONYMOUS, AuthMiddleware


@pytest.fixture
def openid() -> MagicMock:
    with patch("hypnos.infrastructure.auth.keycloak_provider.KeycloakOpenID") as cls:
        yield cls.return_value


def _provider() -> KeycloakProvider:
    return KeycloakProvider("http://kc", "hypnos", "api")


class TestKeycloakProvider:
    def test_active_token(self, openid) -> None:
        openid.introspect.return_value = {
            "active": True,
            "sub": "0xA1",
            "email": "a@example.com",
            "preferred_username": "alice",
            "realm_access": {"roles": ["admin"]},
        }
        user = _provider().decode_token("t")
        assert user == OIDCUser(user_id="0xA1", email="a@example.com", username="alice")
        assert [f.name for f in fields(OIDCUser)] == ["user_id", "email", "username"]

    def test_inactive_token(self, openid) -> None:
        openid.introspect.return_value = {"active": False}
        assert _provider().decode_token("t") is None

    def test_introspection_error(self, openid) -> None:
        openid.introspect.side_effect = KeycloakError("down")
        assert _provider().decode_token("t") is None


def _request(headers: dict[str, str]):
    return SimpleNamespace(
        get_header=lambda name: headers.get(name), context=SimpleNamespace()
    )


class TestAuthMiddleware:
    @pytest.mark.asyncio
    async def test_bearer_user_is_normalized(self) -> None:
        keycloak = MagicMock()
        keycloak.decode_token.return_value = OIDCUser("0xA1", "a@example.com", "alice")
        req = _request({"Authorization": "Bearer t"})

        await AuthMiddleware(keycloak).process_request(req, None)

        assert req.context.user.user_id == "0xa1"
        assert req.context.user.username == "alice"

    @pytest.mark.asyncio
    async def test_invalid_bearer_has_no_user(self) -> None:
        keycloak = MagicMock()
        keycloak.decode_token.return_value = None
        req = _request({"Authorization": "Bearer t"})

        await AuthMiddleware(keycloak).process_request(req, None)

        assert req.context.user is None

    @pytest.mark.asyncio
    async def test_x_principal_only_without_keycloak(self) -> None:
        req = _request({"X-Principal": "0xB2"})
        await AuthMiddleware(None).process_request(req, None)
        assert req.context.user.user_id == "0xb2"

        req = _request({"X-Principal": "0xB2"})
        await AuthMiddleware(MagicMock()).process_request(req, None)
        assert req.context.user.user_id == ANONYMOUS
