"""Domain exceptions."""


class HypnosError(Exception):
    """Base exception for Hypnos."""

    pass


class ValidationError(HypnosError):
    """Validation failed for input data."""

    pass


class InvalidTarget(ValidationError):
    """Target is missing or the null identifier."""

    pass


class ExpiredGrant(ValidationError):
    """Grant expiry is already in the past."""

    pass


class InvalidSelector(ValidationError):
    """Selector is not a 4-byte code."""

    pass


class InvalidAmount(ValidationError):
    """Value, limit or amount is negative or otherwise unusable."""

    pass


class AuthorizationError(HypnosError):
    """A capability does not allow the requested call.

    ``code`` is stable and names the constraint that blocked the call.
    """

    code = "unauthorized"


class NotFound(AuthorizationError):
    """No capability under that id for the caller."""

    code = "not_found"


class Inactive(AuthorizationError):
    """Capability has been revoked."""

    code = "inactive"


class TargetMismatch(AuthorizationError):
    """Call target differs from the capability target."""

    code = "target_mismatch"


class Expired(AuthorizationError):
    """Capability expiry has passed."""

    code = "expired"


class SelectorMismatch(AuthorizationError):
    """Payload selector is not the one the capability allows."""

    code = "selector_mismatch"


class ValueExceeded(AuthorizationError):
    """Call value is above the capability max value."""

    code = "value_exceeded"


class TokenMismatch(AuthorizationError):
    """Asset is not the capability's token rail."""

    code = "token_mismatch"


class TokenAmountExceeded(AuthorizationError):
    """Transfer would exceed the cumulative token limit."""

    code = "token_amount_exceeded"


class ReentrantCall(HypnosError):
    """Ledger mutation attempted from inside a guarded execution."""

    pass


class TransferFailed(HypnosError):
    """Underlying asset transfer failed; nothing was recorded."""

    pass


class ReconcilerError(HypnosError):
    """Base exception for event reconciliation."""

    pass


class MalformedEvent(ReconcilerError):
    """Event record cannot be decoded."""

    def __init__(self, sequence: int, reason: str) -> None:
        super().__init__(f"Malformed event at sequence {sequence}: {reason}")
        self.sequence = sequence
        self.reason = reason


class TransientStorageError(ReconcilerError):
    """Mirror storage is temporarily unavailable; the operation may be retried."""

    pass
