"""Capability ledger - source of truth and gate for every gated call."""

import hashlib
import logging
from dataclasses import dataclass, replace

from hypnos.application.dto.execution_dto import GatedCallOutput
from hypnos.application.ledger.reentrancy_guard import ReentrancyGuard
from hypnos.application.ports import AssetTransfer, CallExecutor, Clock, EventLog, LedgerStore
from hypnos.domain.entities import SUCCESS_REASON, Capability, ExecutionRecord
from hypnos.domain.events import (
    CapabilityGranted,
    CapabilityRevoked,
    EventEnvelope,
    ExecutionRecorded,
    LedgerEvent,
    PermissionUsed,
)
from hypnos.domain.exceptions import (
    Expired,
    ExpiredGrant,
    Inactive,
    InvalidAmount,
    InvalidTarget,
    NotFound,
    SelectorMismatch,
    TargetMismatch,
    TokenAmountExceeded,
    TokenMismatch,
    TransferFailed,
    ValidationError,
    ValueExceeded,
)
from hypnos.domain.revert_reason import decode_revert_reason
from hypnos.domain.value_objects import (
    Selector,
    is_null_identifier,
    normalize_asset,
    normalize_identifier,
    selector_of,
)

logger = logging.getLogger(__name__)

TOKEN_TRANSFER_SELECTOR = Selector.for_signature("transfer(address,uint256)")


def derive_id(*parts: object) -> str:
    """Deterministic 32-byte identifier as 0x-prefixed hex."""
    digest = hashlib.sha256()
    for part in parts:
        text = part.hex() if isinstance(part, bytes) else str(part)
        digest.update(text.encode("utf-8"))
        digest.update(b"\x1f")
    return "0x" + digest.hexdigest()


@dataclass(frozen=True)
class _TxContext:
    transaction_hash: str
    block_number: int
    timestamp: int


class CapabilityLedger:
    """Grants, revokes and gates calls against capabilities.

    Every mutation runs inside the reentrancy guard. Events are appended to
    the log before the store is updated, so a failed append changes nothing.
    """

    def __init__(
        self,
        store: LedgerStore,
        event_log: EventLog,
        call_executor: CallExecutor,
        asset_transfer: AssetTransfer,
        clock: Clock,
    ) -> None:
        self._store = store
        self._event_log = event_log
        self._call_executor = call_executor
        self._asset_transfer = asset_transfer
        self._clock = clock
        self._guard = ReentrancyGuard()

    async def grant(
        self,
        grantee: str,
        target: str,
        selector: Selector | str,
        max_value: int,
        max_token_amount: int = 0,
        token_asset: str | None = None,
        expiry: int = 0,
    ) -> str:
        """Grant a capability to ``grantee``. Returns the capability id."""
        grantee = normalize_identifier(grantee)
        target = normalize_identifier(target)
        if not grantee:
            raise ValidationError("Grantee is required")
        if is_null_identifier(target):
            raise InvalidTarget("Target must not be the null identifier")
        if not isinstance(selector, Selector):
            selector = Selector.from_hex(selector)
        _require_non_negative("max_value", max_value)
        _require_non_negative("max_token_amount", max_token_amount)
        asset = normalize_asset(token_asset)

        async with self._guard.hold():
            now = self._clock.now()
            if expiry < 0 or (expiry != 0 and expiry <= now):
                raise ExpiredGrant(f"Expiry {expiry} is not in the future (now {now})")

            tx = self._begin(now)
            capability_id = derive_id(
                "capability",
                grantee,
                target,
                selector.hex(),
                max_value,
                max_token_amount,
                asset,
                expiry,
                tx.block_number,
                tx.timestamp,
            )
            capability = Capability(
                id=capability_id,
                grantee=grantee,
                target=target,
                selector=selector,
                max_value=max_value,
                max_token_amount=max_token_amount,
                token_asset=asset,
                expiry=expiry,
                created_at=now,
            )
            await self._emit(
                tx,
                CapabilityGranted(
                    grantee=grantee,
                    capability_id=capability_id,
                    target=target,
                    selector=selector.hex(),
                    max_value=max_value,
                    max_token_amount=max_token_amount,
                    token_asset=asset,
                    expiry=expiry,
                ),
            )
            self._store.put_capability(capability)

        logger.info("Capability granted: %s to %s on %s", capability_id, grantee, target)
        return capability_id

    async def revoke(self, caller: str, capability_id: str) -> None:
        """Revoke a capability owned by ``caller``.

        Revoking an already revoked capability is a no-op: nothing is emitted.
        """
        caller = normalize_identifier(caller)
        async with self._guard.hold():
            capability = self._store.get_capability(caller, capability_id)
            if capability is None:
                raise NotFound(f"Capability {capability_id} not found for {caller}")
            if not capability.active:
                logger.info("Capability already revoked: %s", capability_id)
                return

            tx = self._begin(self._clock.now())
            await self._emit(tx, CapabilityRevoked(grantee=caller, capability_id=capability_id))
            self._store.put_capability(replace(capability, active=False))

        logger.info("Capability revoked: %s by %s", capability_id, caller)

    async def execute_gated(
        self,
        caller: str,
        capability_id: str,
        target: str,
        payload: bytes,
        value: int = 0,
    ) -> GatedCallOutput:
        """Check the capability, call the target, record the outcome.

        A failing inner call is recorded and reported in the output; only
        gate failures raise. If the events cannot be appended after the call
        ran, the append error propagates and nothing is recorded; effects of
        the target call itself are not undone.
        """
        caller = normalize_identifier(caller)
        target = normalize_identifier(target)
        _require_non_negative("value", value)

        async with self._guard.hold():
            now = self._clock.now()
            capability = self._authorize_call(caller, capability_id, target, payload, value, now)
            tx = self._begin(now)

            result = await self._call_executor.call(caller, target, payload, value)
            reason = SUCCESS_REASON if result.success else decode_revert_reason(result.return_data)

            record = self._new_record(
                tx,
                caller=caller,
                target=target,
                selector=selector_of(payload),
                value=value,
                payload=payload,
                success=result.success,
                reason=reason,
                capability_id=capability.id,
            )
            await self._emit_usage(tx, record)
            self._store.add_execution(record)

        logger.info(
            "Gated execution %s via %s: %s",
            record.id,
            capability_id,
            "SUCCESS" if record.success else f"FAILED: {reason}",
        )
        return GatedCallOutput(
            success=result.success,
            return_data=result.return_data,
            execution_id=record.id,
        )

    async def execute_token_transfer(
        self,
        caller: str,
        capability_id: str,
        asset: str,
        recipient: str,
        amount: int,
    ) -> bool:
        """Transfer ``amount`` of ``asset`` to ``recipient`` under the capability's token limit.

        Unlike ``execute_gated``, a failed transfer raises TransferFailed and
        leaves no record, no spend and no event. If the events cannot be
        appended after the assets moved, the transfer is sent back first.
        """
        caller = normalize_identifier(caller)
        recipient = normalize_identifier(recipient)
        asset_id = normalize_asset(asset)
        if is_null_identifier(recipient):
            raise InvalidTarget("Recipient must not be the null identifier")
        if amount <= 0:
            raise InvalidAmount("amount must be positive")

        async with self._guard.hold():
            now = self._clock.now()
            capability = self._lookup_usable(caller, capability_id, now)
            if capability.token_asset is None or asset_id != capability.token_asset:
                raise TokenMismatch(
                    f"Capability {capability_id} does not cover asset {asset_id or 'native'}"
                )
            spent = self._store.token_spent(capability.id)
            if spent + amount > capability.max_token_amount:
                raise TokenAmountExceeded(
                    f"Transfer of {amount} exceeds remaining token limit "
                    f"{capability.max_token_amount - spent}"
                )

            tx = self._begin(now)
            try:
                transferred = await self._asset_transfer.transfer(
                    asset_id, caller, recipient, amount
                )
            except TransferFailed:
                raise
            except Exception as e:
                raise TransferFailed(f"Asset transfer failed: {e}") from e
            if not transferred:
                raise TransferFailed("Asset transfer failed")

            record = self._new_record(
                tx,
                caller=caller,
                target=asset_id,
                selector=TOKEN_TRANSFER_SELECTOR,
                value=amount,
                payload=recipient.encode("utf-8"),
                success=True,
                reason=SUCCESS_REASON,
                capability_id=capability.id,
            )
            try:
                await self._emit_usage(tx, record)
            except Exception as e:
                await self._refund(asset_id, recipient, caller, amount)
                raise TransferFailed(f"Transfer could not be recorded: {e}") from e
            self._store.add_execution(record, token_spent=spent + amount)

        logger.info(
            "Token transfer %s via %s: %d of %s to %s",
            record.id,
            capability_id,
            amount,
            asset_id,
            recipient,
        )
        return True

    def get_capability(self, grantee: str, capability_id: str) -> Capability | None:
        return self._store.get_capability(normalize_identifier(grantee), capability_id)

    def list_capability_ids(self, grantee: str) -> list[str]:
        return self._store.list_capability_ids(normalize_identifier(grantee))

    def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        return self._store.get_execution(execution_id)

    def get_execution_count(self) -> int:
        return self._store.execution_count()

    def _lookup_usable(self, caller: str, capability_id: str, now: int) -> Capability:
        capability = self._store.get_capability(caller, capability_id)
        if capability is None:
            raise NotFound(f"Capability {capability_id} not found for {caller}")
        if not capability.active:
            raise Inactive(f"Capability {capability_id} is revoked")
        if capability.is_expired(now):
            raise Expired(f"Capability {capability_id} expired at {capability.expiry}")
        return capability

    def _authorize_call(
        self,
        caller: str,
        capability_id: str,
        target: str,
        payload: bytes,
        value: int,
        now: int,
    ) -> Capability:
        capability = self._store.get_capability(caller, capability_id)
        if capability is None:
            raise NotFound(f"Capability {capability_id} not found for {caller}")
        if not capability.active:
            raise Inactive(f"Capability {capability_id} is revoked")
        if capability.target != target:
            raise TargetMismatch(f"Capability target is {capability.target}, not {target}")
        if capability.is_expired(now):
            raise Expired(f"Capability {capability_id} expired at {capability.expiry}")
        if not capability.selector.allows(payload):
            raise SelectorMismatch(
                f"Capability allows {capability.selector.hex()}, "
                f"call uses {selector_of(payload).hex()}"
            )
        if value > capability.max_value:
            raise ValueExceeded(f"Value {value} exceeds limit {capability.max_value}")
        return capability

    async def _refund(self, asset: str, holder: str, owner: str, amount: int) -> None:
        try:
            refunded = await self._asset_transfer.transfer(asset, holder, owner, amount)
        except Exception:
            logger.exception("Refund of %d %s from %s failed", amount, asset, holder)
            return
        if not refunded:
            logger.error("Refund of %d %s from %s refused", amount, asset, holder)

    def _begin(self, now: int) -> _TxContext:
        nonce = self._store.next_nonce()
        return _TxContext(
            transaction_hash=derive_id("tx", nonce, now),
            block_number=nonce,
            timestamp=now,
        )

    def _new_record(
        self,
        tx: _TxContext,
        *,
        caller: str,
        target: str,
        selector: Selector,
        value: int,
        payload: bytes,
        success: bool,
        reason: str,
        capability_id: str,
    ) -> ExecutionRecord:
        sequence = self._store.execution_count() + 1
        return ExecutionRecord(
            id=derive_id(
                "execution", caller, target, payload, value, tx.timestamp, tx.block_number, sequence
            ),
            sequence=sequence,
            caller=caller,
            target=target,
            selector=selector,
            value=value,
            success=success,
            reason=reason,
            capability_id=capability_id,
            created_at=tx.timestamp,
        )

    async def _emit_usage(self, tx: _TxContext, record: ExecutionRecord) -> None:
        await self._emit(
            tx,
            ExecutionRecorded(
                execution_id=record.id,
                caller=record.caller,
                target=record.target,
                selector=record.selector.hex(),
                value=record.value,
                capability_id=record.capability_id,
                success=record.success,
                reason=record.reason,
            ),
            PermissionUsed(
                grantee=record.caller,
                capability_id=record.capability_id,
                execution_id=record.id,
                target=record.target,
                selector=record.selector.hex(),
                value=record.value,
                success=record.success,
            ),
        )

    async def _emit(self, tx: _TxContext, *events: LedgerEvent) -> None:
        await self._event_log.append(
            [
                EventEnvelope(
                    transaction_hash=tx.transaction_hash,
                    log_index=index,
                    block_number=tx.block_number,
                    timestamp=tx.timestamp,
                    event=event,
                )
                for index, event in enumerate(events)
            ]
        )


def _require_non_negative(name: str, amount: int) -> None:
    if amount < 0:
        raise InvalidAmount(f"{name} must not be negative")
