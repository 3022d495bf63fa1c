"""Item label normalization."""

from supply_kernel.exceptions import InvalidLabelError


def normalize_label(raw: str) -> str:
    """
    Normalize a detected class name into a ledger key.

    Lowercases and replaces each space with an underscore, after trimming
    surrounding whitespace.  Runs of spaces are not collapsed, so
    ``"Luva  M"`` becomes ``"luva__m"``.

    Raises:
        InvalidLabelError: If the label is empty after trimming.
    """
    if raw is None:
        raise InvalidLabelError(raw)
    normalized = str(raw).strip().lower().replace(" ", "_")
    if not normalized:
        raise InvalidLabelError(raw)
    return normalized


def display_label(label: str) -> str:
    """Human-readable form of a normalized label."""
    return label.replace("_", " ")
