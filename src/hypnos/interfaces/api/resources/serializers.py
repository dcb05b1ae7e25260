"""Entity to JSON conversions shared by the resources."""

from dataclasses import asdict

from hypnos.domain.entities import (
    AuditEvent,
    Capability,
    DeadLetter,
    Execution,
    ExecutionRecord,
    Permission,
)


def capability_to_dict(c: Capability) -> dict:
    return {
        "id": c.id,
        "grantee": c.grantee,
        "target": c.target,
        "selector": c.selector.hex(),
        "max_value": c.max_value,
        "max_token_amount": c.max_token_amount,
        "token_asset": c.token_asset,
        "expiry": c.expiry,
        "created_at": c.created_at,
        "active": c.active,
    }


def record_to_dict(r: ExecutionRecord) -> dict:
    return {
        "id": r.id,
        "sequence": r.sequence,
        "caller": r.caller,
        "target": r.target,
        "selector": r.selector.hex(),
        "value": r.value,
        "success": r.success,
        "reason": r.reason,
        "capability_id": r.capability_id,
        "created_at": r.created_at,
    }


def permission_to_dict(p: Permission) -> dict:
    return asdict(p)


def execution_to_dict(e: Execution) -> dict:
    return asdict(e)


def audit_event_to_dict(a: AuditEvent) -> dict:
    data = asdict(a)
    data["kind"] = a.kind.value
    return data


def dead_letter_to_dict(d: DeadLetter) -> dict:
    return {
        "stream": d.stream,
        "sequence": d.sequence,
        "raw": d.raw,
        "error": d.error,
        "status": d.status.value,
        "created_at": d.created_at.isoformat(),
        "updated_at": d.updated_at.isoformat(),
        "replacement": d.replacement,
    }
