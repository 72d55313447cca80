from __future__ import annotations

from dataclasses import dataclass
from math import isfinite
from typing import Tuple


class ValidationError(ValueError):
    """Text typed into an inline editor is not a usable number."""


# Partial inputs a number field passes through while the user is typing
_INCOMPLETE = {"", "-", "+", ".", "-.", "+."}


def parse_coefficient(text: str) -> float:
    """
    Parse the text of a numeric inline editor.

    Raises:
        ValidationError: For empty or partial input, and for anything that is
            not a finite float.
    """
    stripped = text.strip()
    if stripped in _INCOMPLETE:
        raise ValidationError(f"Incomplete number: '{text}'")
    try:
        value = float(stripped)
    except ValueError:
        raise ValidationError(f"Not a number: '{text}'") from None
    if not isfinite(value):
        raise ValidationError(f"Number must be finite: '{text}'")
    return value


def format_coefficient(value: float) -> str:
    """Shortest text that parses back to exactly ``value`` ('1' rather than '1.0')."""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text


@dataclass
class InlineEditor:
    """An open numeric editor for one bond's stiffness, anchored at the bond midpoint (graph units)."""
    bond_id: int
    anchor: Tuple[float, float]
    text: str
