"""API resource tests."""

import asyncio

import pytest
from falcon.testing import TestClient

from hypnos.infrastructure.execution import DemoTarget
from hypnos.infrastructure.execution.demo_target import INCREMENT_COUNTER

from tests.conftest import DEMO, GRANTEE, OTHER, TARGET, TOKEN


def _grant(client: TestClient, headers: dict, **body) -> dict:
    payload = {"target": TARGET, "max_value": 100}
    payload.update(body)
    result = client.simulate_post("/v1/ledger/capabilities", json=payload, headers=headers)
    assert result.status_code == 201, result.json
    return result.json


class TestGrant:
    def test_grant_returns_capability(self, client, as_grantee) -> None:
        body = _grant(client, as_grantee)
        assert body["grantee"] == GRANTEE
        assert body["active"] is True
        assert body["selector"] == "0x00000000"
        assert body["max_value"] == 100

    def test_grant_requires_principal(self, client) -> None:
        result = client.simulate_post("/v1/ledger/capabilities", json={"target": TARGET})
        assert result.status_code == 401

    def test_grant_missing_target(self, client, as_grantee) -> None:
        result = client.simulate_post(
            "/v1/ledger/capabilities", json={"max_value": 1}, headers=as_grantee
        )
        assert result.status_code == 400
        assert "target" in result.json["error"]

    def test_grant_null_target_is_validation_error(self, client, as_grantee) -> None:
        result = client.simulate_post(
            "/v1/ledger/capabilities",
            json={"target": "0x" + "0" * 40, "max_value": 1},
            headers=as_grantee,
        )
        assert result.status_code == 400
        assert result.json["error"] == "invalid_request"

    def test_grant_accepts_big_amounts_as_strings(self, client, as_grantee) -> None:
        body = _grant(client, as_grantee, max_value=str(2**255))
        assert body["max_value"] == 2**255

    def test_grant_non_integer_amount(self, client, as_grantee) -> None:
        result = client.simulate_post(
            "/v1/ledger/capabilities",
            json={"target": TARGET, "max_value": 1.5},
            headers=as_grantee,
        )
        assert result.status_code == 400

    @pytest.mark.parametrize(
        "field, value",
        [("target", 42), ("target", ["0xc3"]), ("selector", 12345678), ("token_asset", {"a": 1})],
    )
    def test_grant_non_string_fields(self, client, as_grantee, field, value) -> None:
        payload = {"target": TARGET, "max_value": 1, field: value}
        result = client.simulate_post("/v1/ledger/capabilities", json=payload, headers=as_grantee)
        assert result.status_code == 400
        assert field in result.json["error"]


class TestExecute:
    def test_execute_success_and_value_exceeded(self, client, as_grantee) -> None:
        capability = _grant(client, as_grantee)
        url = f"/v1/ledger/capabilities/{capability['id']}/execute"

        ok = client.simulate_post(
            url, json={"target": TARGET, "payload": "0x01020304", "value": 50}, headers=as_grantee
        )
        assert ok.status_code == 200
        assert ok.json["success"] is True
        assert ok.json["reason"] == "success"

        blocked = client.simulate_post(
            url, json={"target": TARGET, "value": 60}, headers=as_grantee
        )
        assert blocked.status_code == 403
        assert blocked.json["error"] == "value_exceeded"

        record = client.simulate_get(f"/v1/ledger/executions/{ok.json['execution_id']}")
        assert record.status_code == 200
        assert record.json["value"] == 50
        assert record.json["selector"] == "0x01020304"

    def test_inner_failure_still_200(self, client, as_grantee) -> None:
        capability = _grant(client, as_grantee, target=DEMO)
        payload = "0x" + DemoTarget.encode_call("withdraw", 1).hex()
        result = client.simulate_post(
            f"/v1/ledger/capabilities/{capability['id']}/execute",
            json={"target": DEMO, "payload": payload},
            headers=as_grantee,
        )
        assert result.status_code == 200
        assert result.json["success"] is False
        assert result.json["reason"] == "Insufficient balance"

    def test_other_principal_gets_not_found(self, client, as_grantee) -> None:
        capability = _grant(client, as_grantee)
        result = client.simulate_post(
            f"/v1/ledger/capabilities/{capability['id']}/execute",
            json={"target": TARGET},
            headers={"X-Principal": OTHER},
        )
        assert result.status_code == 403
        assert result.json["error"] == "not_found"

    def test_selector_mismatch_code(self, client, as_grantee) -> None:
        capability = _grant(client, as_grantee, target=DEMO, selector=INCREMENT_COUNTER.hex())
        result = client.simulate_post(
            f"/v1/ledger/capabilities/{capability['id']}/execute",
            json={"target": DEMO, "payload": "0xffffffff"},
            headers=as_grantee,
        )
        assert result.status_code == 403
        assert result.json["error"] == "selector_mismatch"

    def test_bad_payload_hex(self, client, as_grantee) -> None:
        capability = _grant(client, as_grantee)
        result = client.simulate_post(
            f"/v1/ledger/capabilities/{capability['id']}/execute",
            json={"target": TARGET, "payload": "0xzz"},
            headers=as_grantee,
        )
        assert result.status_code == 400

    @pytest.mark.parametrize("body", [{"target": 7}, {"target": TARGET, "payload": 1234}])
    def test_execute_non_string_fields(self, client, as_grantee, body) -> None:
        capability = _grant(client, as_grantee)
        result = client.simulate_post(
            f"/v1/ledger/capabilities/{capability['id']}/execute", json=body, headers=as_grantee
        )
        assert result.status_code == 400


class TestRevoke:
    def test_revoke_then_inactive(self, client, as_grantee) -> None:
        capability = _grant(client, as_grantee)
        cid = capability["id"]
        url = f"/v1/ledger/capabilities/{cid}"

        assert client.simulate_delete(url, headers=as_grantee).status_code == 204
        # Second revoke by the owner is a no-op success
        assert client.simulate_delete(url, headers=as_grantee).status_code == 204

        result = client.simulate_post(
            f"/v1/ledger/capabilities/{cid}/execute", json={"target": TARGET}, headers=as_grantee
        )
        assert result.status_code == 403
        assert result.json["error"] == "inactive"

    def test_revoke_by_other_is_not_found(self, client, as_grantee) -> None:
        capability = _grant(client, as_grantee)
        result = client.simulate_delete(
            f"/v1/ledger/capabilities/{capability['id']}", headers={"X-Principal": OTHER}
        )
        assert result.status_code == 403
        assert result.json["error"] == "not_found"


class TestTransfer:
    def test_transfer_and_hard_failure(self, client, as_grantee) -> None:
        capability = _grant(client, as_grantee, max_token_amount=5_000, token_asset=TOKEN)
        url = f"/v1/ledger/capabilities/{capability['id']}/transfer"

        ok = client.simulate_post(
            url, json={"asset": TOKEN, "recipient": OTHER, "amount": 10}, headers=as_grantee
        )
        assert ok.status_code == 200
        assert ok.json == {"success": True}

        failed = client.simulate_post(
            url, json={"asset": TOKEN, "recipient": OTHER, "amount": 4_000}, headers=as_grantee
        )
        assert failed.status_code == 409
        assert failed.json["error"] == "transfer_failed"

        mismatch = client.simulate_post(
            url, json={"asset": "native", "recipient": OTHER, "amount": 1}, headers=as_grantee
        )
        assert mismatch.status_code == 403
        assert mismatch.json["error"] == "token_mismatch"

        stats = client.simulate_get("/v1/ledger/stats")
        assert stats.json["execution_count"] == 1

    @pytest.mark.parametrize(
        "body",
        [
            {"asset": 5, "recipient": OTHER, "amount": 1},
            {"asset": TOKEN, "recipient": [OTHER], "amount": 1},
        ],
    )
    def test_transfer_non_string_fields(self, client, as_grantee, body) -> None:
        capability = _grant(client, as_grantee, max_token_amount=10, token_asset=TOKEN)
        result = client.simulate_post(
            f"/v1/ledger/capabilities/{capability['id']}/transfer", json=body, headers=as_grantee
        )
        assert result.status_code == 400


class TestLedgerReads:
    def test_list_and_get_grantee_capabilities(self, client, as_grantee) -> None:
        first = _grant(client, as_grantee)
        second = _grant(client, as_grantee)

        listing = client.simulate_get(f"/v1/ledger/grantees/{GRANTEE}/capabilities")
        assert [c["id"] for c in listing.json["items"]] == [first["id"], second["id"]]

        one = client.simulate_get(f"/v1/ledger/grantees/{GRANTEE}/capabilities/{first['id']}")
        assert one.status_code == 200
        missing = client.simulate_get(f"/v1/ledger/grantees/{OTHER}/capabilities/{first['id']}")
        assert missing.status_code == 404

    def test_unknown_execution(self, client) -> None:
        assert client.simulate_get("/v1/ledger/executions/0xnope").status_code == 404


class TestMirror:
    def test_mirror_follows_ledger(self, client, as_grantee, reconcile) -> None:
        capability = _grant(client, as_grantee)
        cid = capability["id"]
        executed = client.simulate_post(
            f"/v1/ledger/capabilities/{cid}/execute",
            json={"target": TARGET, "value": 5},
            headers=as_grantee,
        )
        client.simulate_delete(f"/v1/ledger/capabilities/{cid}", headers=as_grantee)

        report = reconcile()
        assert report.applied == 4

        permissions = client.simulate_get("/v1/mirror/permissions", params={"owner": GRANTEE})
        assert [p["id"] for p in permissions.json["items"]] == [cid]
        assert permissions.json["items"][0]["active"] is False
        active = client.simulate_get("/v1/mirror/permissions", params={"active": "true"})
        assert active.json["items"] == []

        execution_id = executed.json["execution_id"]
        detail = client.simulate_get(f"/v1/mirror/executions/{execution_id}")
        assert detail.status_code == 200
        assert detail.json["execution"]["value"] == 5
        assert detail.json["permission"]["id"] == cid

        listing = client.simulate_get(
            "/v1/mirror/executions", params={"caller": GRANTEE, "order": "asc"}
        )
        assert [e["id"] for e in listing.json["items"]] == [execution_id]

        used = client.simulate_get("/v1/mirror/events/PermissionUsed")
        assert len(used.json["items"]) == 1
        assert used.json["items"][0]["kind"] == "PermissionUsed"

        status = client.simulate_get("/v1/reconciler/status")
        assert status.json["cursor"] == status.json["head"] == 4
        assert status.json["lag"] == 0

    def test_mirror_bad_params(self, client) -> None:
        assert client.simulate_get("/v1/mirror/events/Bogus").status_code == 400
        assert (
            client.simulate_get("/v1/mirror/executions", params={"order": "sideways"}).status_code
            == 400
        )
        assert client.simulate_get("/v1/mirror/permissions/0xnope").status_code == 404
        assert client.simulate_get("/v1/mirror/executions/0xnope").status_code == 404


class TestDeadLetters:
    def test_list_and_skip(self, client, as_grantee, event_log, reconcile) -> None:
        bad = asyncio.run(event_log.append_raw("garbage"))
        report = reconcile()
        assert report.blocked_at == bad

        listing = client.simulate_get("/v1/reconciler/dead-letters", params={"status": "pending"})
        assert [d["sequence"] for d in listing.json["items"]] == [bad]

        assert client.simulate_post(f"/v1/reconciler/dead-letters/{bad}/skip").status_code == 401
        skipped = client.simulate_post(
            f"/v1/reconciler/dead-letters/{bad}/skip", headers=as_grantee
        )
        assert skipped.status_code == 200
        assert skipped.json["status"] == "skipped"

        again = client.simulate_post(f"/v1/reconciler/dead-letters/{bad}/skip", headers=as_grantee)
        assert again.status_code == 409
        assert client.simulate_post(
            "/v1/reconciler/dead-letters/99/skip", headers=as_grantee
        ).status_code == 404

    def test_resolve_rejects_malformed_correction(
        self, client, as_grantee, event_log, reconcile
    ) -> None:
        bad = asyncio.run(event_log.append_raw("garbage"))
        reconcile()
        result = client.simulate_post(
            f"/v1/reconciler/dead-letters/{bad}/resolve",
            json={"kind": "CapabilityRevoked"},
            headers=as_grantee,
        )
        assert result.status_code == 400

    def test_resolve_applies_correction(self, client, as_grantee, event_log, reconcile) -> None:
        bad = asyncio.run(event_log.append_raw("garbage"))
        reconcile()
        correction = {
            "kind": "CapabilityRevoked",
            "transaction_hash": "0x" + "ab" * 32,
            "log_index": 0,
            "block_number": 1,
            "timestamp": 1_700_000_000,
            "args": {"grantee": GRANTEE, "capability_id": "0x" + "cd" * 32},
        }
        result = client.simulate_post(
            f"/v1/reconciler/dead-letters/{bad}/resolve", json=correction, headers=as_grantee
        )
        assert result.status_code == 200
        assert result.json["status"] == "resolved"

        status = client.simulate_get("/v1/reconciler/status")
        assert status.json["cursor"] == bad

    def test_unknown_status_filter(self, client) -> None:
        result = client.simulate_get("/v1/reconciler/dead-letters", params={"status": "lost"})
        assert result.status_code == 400


class TestCors:
    def test_preflight(self, client) -> None:
        result = client.simulate_options(
            "/v1/ledger/capabilities", headers={"Origin": "http://localhost:3000"}
        )
        assert result.status_code == 204
        assert result.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    def test_unknown_origin_gets_no_allow_header(self, client) -> None:
        result = client.simulate_get("/v1/health", headers={"Origin": "http://evil.test"})
        assert "Access-Control-Allow-Origin" not in result.headers


@pytest.mark.parametrize("path", ["/v1/health", "/v1/health/ready"])
def test_health_routes(client, path) -> None:
    assert client.simulate_get(path).status_code == 200
