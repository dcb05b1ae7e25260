"""Event record DTO codec - envelopes to JSON-ready dicts and back."""

import json
from dataclasses import asdict
from typing import Annotated, Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from hypnos.domain.events import EVENT_TYPES, EventEnvelope
from hypnos.domain.exceptions import MalformedEvent
from hypnos.domain.value_objects import EventKind

# Bounds follow the mirror schema: 32-byte hashes in String(66), principals
# and targets in String(255), amounts in Numeric(78, 0), times in BigInteger.
Hash32 = Annotated[str, Field(pattern=r"^0x[0-9a-fA-F]{64}$")]
SelectorHex = Annotated[str, Field(pattern=r"^0x[0-9a-fA-F]{8}$")]
Principal = Annotated[str, Field(min_length=1, max_length=255)]
Amount = Annotated[int, Field(ge=0, lt=2**256)]
Int64 = Annotated[int, Field(ge=0, lt=2**63)]


class _RecordHeader(BaseModel):
    kind: EventKind
    transaction_hash: Hash32
    log_index: Annotated[int, Field(ge=0, lt=2**31)]
    block_number: Int64
    timestamp: Int64
    args: dict[str, Any]


class _GrantedArgs(BaseModel):
    grantee: Principal
    capability_id: Hash32
    target: Principal
    selector: SelectorHex
    max_value: Amount
    max_token_amount: Amount
    token_asset: Principal | None
    expiry: Int64


class _RevokedArgs(BaseModel):
    grantee: Principal
    capability_id: Hash32


class _UsedArgs(BaseModel):
    grantee: Principal
    capability_id: Hash32
    execution_id: Hash32
    target: Principal
    selector: SelectorHex
    value: Amount
    success: bool


class _RecordedArgs(BaseModel):
    execution_id: Hash32
    caller: Principal
    target: Principal
    selector: SelectorHex
    value: Amount
    capability_id: Hash32
    success: bool
    reason: str


_ARGS: dict[EventKind, type[BaseModel]] = {
    EventKind.CAPABILITY_GRANTED: _GrantedArgs,
    EventKind.CAPABILITY_REVOKED: _RevokedArgs,
    EventKind.PERMISSION_USED: _UsedArgs,
    EventKind.EXECUTION_RECORDED: _RecordedArgs,
}


def encode_envelope(envelope: EventEnvelope) -> dict[str, Any]:
    """Encode envelope as a plain dict."""
    return {
        "sequence": envelope.sequence,
        "kind": envelope.event.kind.value,
        "transaction_hash": envelope.transaction_hash,
        "log_index": envelope.log_index,
        "block_number": envelope.block_number,
        "timestamp": envelope.timestamp,
        "args": asdict(envelope.event),
    }


def decode_record(sequence: int, data: str | dict[str, Any]) -> EventEnvelope:
    """Decode a raw record. Raises MalformedEvent if it cannot be parsed.

    ``sequence`` comes from the log position, not from the record body.
    """
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise MalformedEvent(sequence, f"invalid JSON: {e.msg}") from e
    if not isinstance(data, dict):
        raise MalformedEvent(sequence, "record is not an object")

    try:
        header = _RecordHeader.model_validate(data)
        args = _ARGS[header.kind].model_validate(header.args)
    except PydanticValidationError as e:
        raise MalformedEvent(sequence, _summarize(e)) from e

    return EventEnvelope(
        transaction_hash=header.transaction_hash,
        log_index=header.log_index,
        block_number=header.block_number,
        timestamp=header.timestamp,
        event=EVENT_TYPES[header.kind](**args.model_dump()),
        sequence=sequence,
    )


def _summarize(error: PydanticValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
