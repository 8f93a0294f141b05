"""Flattening of extracted values into secret payload bytes."""
from decimal import Decimal
from typing import Any, List, Union

from .errors import UnsupportedValueError

# Closed set of shapes that can be flattened into a single secret field
Scalar = Union[str, int, float, bool, List[str]]


def _format_float(value: float) -> str:
    text = repr(value)
    if "e" in text or "E" in text:
        # Expand exponent notation; Decimal keeps the shortest digits repr chose
        text = format(Decimal(text), "f")
    if text.endswith(".0"):
        text = text[:-2]
    return text


def to_bytes(value: Any) -> bytes:
    """
    Convert an extracted value into its canonical byte representation.

    Rules:
        - str: UTF-8 encoded as-is
        - bool: "true" / "false"
        - int: decimal text
        - float: shortest round-trippable decimal text, no exponent
        - list of str: comma-joined, no brackets or quotes

    Raises:
        UnsupportedValueError: For mappings, null, lists holding anything but
            strings, and any other shape
    """
    if isinstance(value, str):
        return value.encode("utf-8")
    # bool is an int subclass, so it must be checked first
    if isinstance(value, bool):
        return b"true" if value else b"false"
    if isinstance(value, int):
        return str(value).encode("utf-8")
    if isinstance(value, float):
        return _format_float(value).encode("utf-8")
    if isinstance(value, (list, tuple)):
        for item in value:
            if not isinstance(item, str):
                raise UnsupportedValueError(
                    f"unable to extract scalar value from list, only lists of strings are supported. "
                    f"Try extracting a specific element. Unsupported element: {item!r}"
                )
        return ",".join(value).encode("utf-8")
    raise UnsupportedValueError(
        f"unable to extract scalar value, unsupported type {type(value).__name__}: {value!r}"
    )
