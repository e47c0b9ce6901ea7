"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used exclusively by
``__post_init__`` methods in sibling model modules to enforce runtime
type constraints and value ranges.
"""

from __future__ import annotations

from typing import Any


_HEX_KEY_LENGTH = 64


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_timestamp(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_non_negative(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative number (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def validate_str(value: Any, name: str) -> None:
    """Raise ``TypeError`` if *value* is not a ``str``."""
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a str, got {type(value).__name__}")


def validate_hex_key(value: Any, name: str) -> None:
    """Raise if *value* is not a lowercase 64-character hex string."""
    validate_str(value, name)
    if len(value) != _HEX_KEY_LENGTH:
        raise ValueError(f"{name} must be {_HEX_KEY_LENGTH} hex chars, got {len(value)}")
    try:
        bytes.fromhex(value)
    except ValueError as e:
        raise ValueError(f"{name} is not valid hex: {value!r}") from e
    if value != value.lower():
        raise ValueError(f"{name} must be lowercase hex")
