"""Function selector - leading 4 bytes of a call payload."""

import hashlib
from dataclasses import dataclass

from hypnos.domain.exceptions import InvalidSelector

SELECTOR_SIZE = 4


@dataclass(frozen=True)
class Selector:
    """4-byte action code. All zero bytes is the wildcard."""

    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != SELECTOR_SIZE:
            raise InvalidSelector("Selector must be 4 bytes")

    @classmethod
    def from_hex(cls, text: str) -> "Selector":
        raw = text[2:] if text.startswith(("0x", "0X")) else text
        try:
            value = bytes.fromhex(raw)
        except ValueError as e:
            raise InvalidSelector(f"Selector is not hex: {text!r}") from e
        return cls(value)

    @classmethod
    def for_signature(cls, signature: str) -> "Selector":
        """Derive a selector from a function signature like ``setMessage(string)``."""
        return cls(hashlib.sha3_256(signature.encode()).digest()[:SELECTOR_SIZE])

    @property
    def is_wildcard(self) -> bool:
        return self.value == WILDCARD_BYTES

    def hex(self) -> str:
        return "0x" + self.value.hex()

    def allows(self, payload: bytes) -> bool:
        """Wildcard allows any payload; otherwise the payload must start with this selector."""
        if self.is_wildcard:
            return True
        return payload[:SELECTOR_SIZE] == self.value


WILDCARD_BYTES = b"\x00" * SELECTOR_SIZE
WILDCARD = Selector(WILDCARD_BYTES)


def selector_of(payload: bytes) -> Selector:
    """Selector carried by a payload; payloads shorter than 4 bytes are right-padded."""
    head = payload[:SELECTOR_SIZE]
    return Selector(head.ljust(SELECTOR_SIZE, b"\x00"))
