"""Demo target: counter, message and per-caller balances."""

from hypnos.domain.value_objects import Selector, selector_of
from hypnos.infrastructure.execution.call_executor import CallContext, TargetRevert

_WORD = 32

INCREMENT_COUNTER = Selector.for_signature("incrementCounter()")
SET_MESSAGE = Selector.for_signature("setMessage(string)")
DEPOSIT = Selector.for_signature("deposit()")
WITHDRAW = Selector.for_signature("withdraw(uint256)")
GET_STATE = Selector.for_signature("getState()")


def encode_uint(value: int) -> bytes:
    return value.to_bytes(_WORD, "big")


def encode_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    return encode_uint(_WORD) + encode_uint(len(raw)) + raw + b"\x00" * (-len(raw) % _WORD)


def decode_uint(data: bytes) -> int:
    if len(data) < _WORD:
        raise TargetRevert.with_reason("Bad uint256 argument")
    return int.from_bytes(data[:_WORD], "big")


def decode_string(data: bytes) -> str:
    offset = decode_uint(data)
    length = decode_uint(data[offset:])
    start = offset + _WORD
    if start + length > len(data):
        raise TargetRevert.with_reason("Bad string argument")
    return data[start : start + length].decode("utf-8", errors="replace")


class DemoTarget:
    """Contract-like object used to exercise gated execution end to end."""

    def __init__(self) -> None:
        self.counter = 0
        self.message = ""
        self.balances: dict[str, int] = {}

    @staticmethod
    def encode_call(name: str, *args: int | str) -> bytes:
        """Build a payload, e.g. ``encode_call("withdraw", 5)``."""
        match name:
            case "incrementCounter":
                return INCREMENT_COUNTER.value
            case "setMessage":
                return SET_MESSAGE.value + encode_string(str(args[0]))
            case "deposit":
                return DEPOSIT.value
            case "withdraw":
                return WITHDRAW.value + encode_uint(int(args[0]))
            case "getState":
                return GET_STATE.value
        raise ValueError(f"Unknown demo function: {name}")

    async def handle(self, ctx: CallContext) -> bytes:
        selector = selector_of(ctx.payload)
        args = ctx.payload[4:]
        if selector != DEPOSIT and ctx.value:
            raise TargetRevert.with_reason("Function is not payable")

        if selector == INCREMENT_COUNTER:
            self.counter += 1
            return encode_uint(self.counter)
        if selector == SET_MESSAGE:
            self.message = decode_string(args)
            return b""
        if selector == DEPOSIT:
            if ctx.value == 0:
                raise TargetRevert.with_reason("Must deposit something")
            self.balances[ctx.sender] = self.balances.get(ctx.sender, 0) + ctx.value
            return b""
        if selector == WITHDRAW:
            amount = decode_uint(args)
            balance = self.balances.get(ctx.sender, 0)
            if amount > balance:
                raise TargetRevert.with_reason("Insufficient balance")
            self.balances[ctx.sender] = balance - amount
            return b""
        if selector == GET_STATE:
            return encode_uint(self.counter) + encode_uint(self.balances.get(ctx.sender, 0))
        raise TargetRevert()
