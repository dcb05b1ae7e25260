"""Dead letter entity - event record that could not be decoded."""

from dataclasses import dataclass
from datetime import datetime

from hypnos.domain.value_objects import DeadLetterStatus


@dataclass
class DeadLetter:
    """Parked event. While pending, the stream cursor stays before it."""

    stream: str
    sequence: int
    raw: str
    error: str
    status: DeadLetterStatus
    created_at: datetime
    updated_at: datetime
    replacement: str | None = None
