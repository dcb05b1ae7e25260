"""Revert reason codec.

Targets report failure with returned bytes. The standard shapes are
``Error(string)`` (selector ``0x08c379a0``) and ``Panic(uint256)``
(selector ``0x4e487b71``), both ABI encoded. Decoding never raises.
"""

ERROR_SELECTOR = bytes.fromhex("08c379a0")
PANIC_SELECTOR = bytes.fromhex("4e487b71")

UNKNOWN_ERROR = "unknown error"
EXECUTION_REVERTED = "execution reverted"

_WORD = 32


def encode_revert_reason(reason: str) -> bytes:
    """ABI encode ``Error(string)``."""
    text = reason.encode("utf-8")
    padded = text + b"\x00" * (-len(text) % _WORD)
    return (
        ERROR_SELECTOR
        + _WORD.to_bytes(_WORD, "big")
        + len(text).to_bytes(_WORD, "big")
        + padded
    )


def encode_panic(code: int) -> bytes:
    """ABI encode ``Panic(uint256)``."""
    return PANIC_SELECTOR + code.to_bytes(_WORD, "big")


def decode_revert_reason(data: bytes | None) -> str:
    """Best-effort reason from returned data.

    Empty data gives ``"unknown error"``; data that is not a well-formed
    ``Error(string)`` or ``Panic(uint256)`` gives ``"execution reverted"``.
    """
    if not data:
        return UNKNOWN_ERROR
    selector, body = data[:4], data[4:]
    if selector == ERROR_SELECTOR:
        reason = _decode_string(body)
        if reason is not None:
            return reason
    elif selector == PANIC_SELECTOR and len(body) >= _WORD:
        code = int.from_bytes(body[:_WORD], "big")
        return f"panic: 0x{code:02x}"
    return EXECUTION_REVERTED


def _decode_string(body: bytes) -> str | None:
    if len(body) < 2 * _WORD:
        return None
    offset = int.from_bytes(body[:_WORD], "big")
    if offset + _WORD > len(body):
        return None
    length = int.from_bytes(body[offset : offset + _WORD], "big")
    start = offset + _WORD
    if start + length > len(body):
        return None
    try:
        return body[start : start + length].decode("utf-8")
    except UnicodeDecodeError:
        return None
