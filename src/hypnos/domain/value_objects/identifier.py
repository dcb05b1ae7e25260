"""Principal, target and asset identifiers."""

NULL_IDENTIFIER = "0x" + "0" * 40
NATIVE_ASSET = "native"


def normalize_identifier(value: str | None) -> str:
    """Lower-case and strip an identifier. None becomes empty string."""
    return (value or "").strip().lower()


def is_null_identifier(value: str | None) -> bool:
    """Empty identifiers and the all-zero address are null."""
    norm = normalize_identifier(value)
    if not norm:
        return True
    if norm.startswith("0x"):
        return set(norm[2:]) <= {"0"}
    return False


def normalize_asset(value: str | None) -> str | None:
    """Token asset identifier, or None for the native asset."""
    if value is None or normalize_identifier(value) == NATIVE_ASSET:
        return None
    if is_null_identifier(value):
        return None
    return normalize_identifier(value)
