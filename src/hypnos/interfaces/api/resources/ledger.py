"""Capability ledger API resources."""

import falcon
import falcon.asgi

from hypnos.application.ledger.capability_ledger import CapabilityLedger
from hypnos.application.ports import EventLog
from hypnos.domain.exceptions import HypnosError, NotFound
from hypnos.domain.value_objects import WILDCARD
from hypnos.interfaces.api.resources.errors import require_principal, set_error
from hypnos.interfaces.api.resources.serializers import capability_to_dict, record_to_dict


def _amount(body: dict, key: str, default: int | None = None) -> int:
    """Integer field; decimal strings are accepted for values beyond JSON number range."""
    raw = body.get(key, default)
    if raw is None:
        raise KeyError(key)
    if isinstance(raw, bool):
        raise ValueError(f"{key} must be an integer")
    if isinstance(raw, str):
        return int(raw, 0)
    if isinstance(raw, int):
        return raw
    raise ValueError(f"{key} must be an integer")


def _text(body: dict, key: str, required: bool = True) -> str | None:
    """String field; a missing required field raises KeyError."""
    raw = body.get(key)
    if raw is None:
        if required:
            raise KeyError(key)
        return None
    if not isinstance(raw, str):
        raise ValueError(f"{key} must be a string")
    return raw


def _payload(body: dict) -> bytes:
    raw = _text(body, "payload", required=False) or "0x"
    return bytes.fromhex(raw[2:] if raw.startswith(("0x", "0X")) else raw)


async def _body(req: falcon.asgi.Request) -> dict:
    body = await req.get_media(default_when_empty={})
    if not isinstance(body, dict):
        raise ValueError("JSON object expected")
    return body


class CapabilitiesResource:
    """POST /v1/ledger/capabilities - grant a capability to the caller."""

    def __init__(self, ledger: CapabilityLedger) -> None:
        self._ledger = ledger

    async def on_post(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        user = require_principal(req, resp)
        if not user:
            return

        try:
            body = await _body(req)
            target = _text(body, "target")
            selector = _text(body, "selector", required=False) or WILDCARD
            max_value = _amount(body, "max_value", 0)
            max_token_amount = _amount(body, "max_token_amount", 0)
            token_asset = _text(body, "token_asset", required=False)
            expiry = _amount(body, "expiry", 0)
        except KeyError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": f"Missing required field: {e}"}
            return
        except ValueError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": str(e)}
            return

        try:
            capability_id = await self._ledger.grant(
                user.user_id,
                target,
                selector,
                max_value,
                max_token_amount=max_token_amount,
                token_asset=token_asset,
                expiry=expiry,
            )
        except HypnosError as e:
            set_error(resp, e)
            return

        capability = self._ledger.get_capability(user.user_id, capability_id)
        resp.media = capability_to_dict(capability)
        resp.status = falcon.HTTP_201


class CapabilityResource:
    """DELETE /v1/ledger/capabilities/{capability_id} - revoke own capability."""

    def __init__(self, ledger: CapabilityLedger) -> None:
        self._ledger = ledger

    async def on_delete(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        capability_id: str,
    ) -> None:
        user = require_principal(req, resp)
        if not user:
            return
        try:
            await self._ledger.revoke(user.user_id, capability_id)
        except HypnosError as e:
            set_error(resp, e)
            return
        resp.status = falcon.HTTP_204


class CapabilityExecuteResource:
    """POST /v1/ledger/capabilities/{capability_id}/execute - gated call."""

    def __init__(self, ledger: CapabilityLedger) -> None:
        self._ledger = ledger

    async def on_post(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        capability_id: str,
    ) -> None:
        """Inner call failures still answer 200 with ``success: false``."""
        user = require_principal(req, resp)
        if not user:
            return

        try:
            body = await _body(req)
            target = _text(body, "target")
            payload = _payload(body)
            value = _amount(body, "value", 0)
        except KeyError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": f"Missing required field: {e}"}
            return
        except ValueError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": str(e)}
            return

        try:
            output = await self._ledger.execute_gated(
                user.user_id, capability_id, target, payload, value
            )
        except HypnosError as e:
            set_error(resp, e)
            return

        record = self._ledger.get_execution(output.execution_id)
        resp.media = {
            "success": output.success,
            "return_data": "0x" + output.return_data.hex(),
            "execution_id": output.execution_id,
            "reason": record.reason if record else None,
        }
        resp.status = falcon.HTTP_200


class CapabilityTransferResource:
    """POST /v1/ledger/capabilities/{capability_id}/transfer - token transfer."""

    def __init__(self, ledger: CapabilityLedger) -> None:
        self._ledger = ledger

    async def on_post(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        capability_id: str,
    ) -> None:
        user = require_principal(req, resp)
        if not user:
            return

        try:
            body = await _body(req)
            asset = _text(body, "asset")
            recipient = _text(body, "recipient")
            amount = _amount(body, "amount")
        except KeyError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": f"Missing required field: {e}"}
            return
        except ValueError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": str(e)}
            return

        try:
            await self._ledger.execute_token_transfer(
                user.user_id, capability_id, asset, recipient, amount
            )
        except HypnosError as e:
            set_error(resp, e)
            return
        resp.media = {"success": True}
        resp.status = falcon.HTTP_200


class GranteeCapabilitiesResource:
    """GET /v1/ledger/grantees/{grantee}/capabilities[/{capability_id}]."""

    def __init__(self, ledger: CapabilityLedger) -> None:
        self._ledger = ledger

    async def on_get(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        grantee: str,
    ) -> None:
        """List capabilities granted to ``grantee`` in grant order."""
        items = []
        for capability_id in self._ledger.list_capability_ids(grantee):
            capability = self._ledger.get_capability(grantee, capability_id)
            if capability:
                items.append(capability_to_dict(capability))
        resp.media = {"items": items}
        resp.status = falcon.HTTP_200

    async def on_get_item(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        grantee: str,
        capability_id: str,
    ) -> None:
        capability = self._ledger.get_capability(grantee, capability_id)
        if not capability:
            resp.status = falcon.HTTP_404
            resp.media = {"error": NotFound.code, "detail": "Capability not found"}
            return
        resp.media = capability_to_dict(capability)
        resp.status = falcon.HTTP_200


class LedgerExecutionResource:
    """GET /v1/ledger/executions/{execution_id} - authoritative execution record."""

    def __init__(self, ledger: CapabilityLedger) -> None:
        self._ledger = ledger

    async def on_get(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        execution_id: str,
    ) -> None:
        record = self._ledger.get_execution(execution_id)
        if not record:
            resp.status = falcon.HTTP_404
            resp.media = {"error": "Execution not found"}
            return
        resp.media = record_to_dict(record)
        resp.status = falcon.HTTP_200


class LedgerStatsResource:
    """GET /v1/ledger/stats - execution count and event log head."""

    def __init__(self, ledger: CapabilityLedger, event_log: EventLog) -> None:
        self._ledger = ledger
        self._event_log = event_log

    async def on_get(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        resp.media = {
            "execution_count": self._ledger.get_execution_count(),
            "event_log_head": await self._event_log.last_sequence(),
        }
        resp.status = falcon.HTTP_200
