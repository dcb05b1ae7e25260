"""Domain value objects."""

from hypnos.domain.value_objects.dead_letter_status import DeadLetterStatus
from hypnos.domain.value_objects.event_kind import EventKind
from hypnos.domain.value_objects.identifier import (
    NATIVE_ASSET,
    NULL_IDENTIFIER,
    is_null_identifier,
    normalize_asset,
    normalize_identifier,
)
from hypnos.domain.value_objects.selector import WILDCARD, Selector, selector_of

__all__ = [
    "DeadLetterStatus",
    "EventKind",
    "NATIVE_ASSET",
    "NULL_IDENTIFIER",
    "Selector",
    "WILDCARD",
    "is_null_identifier",
    "normalize_asset",
    "normalize_identifier",
    "selector_of",
]
