"""Dead letter lifecycle."""

from enum import StrEnum


class DeadLetterStatus(StrEnum):
    """Pending letters pin the cursor; skipped and resolved ones release it."""

    PENDING = "pending"
    SKIPPED = "skipped"
    RESOLVED = "resolved"
