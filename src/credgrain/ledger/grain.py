"""
Grain: fixed-point integer amounts of the distributed currency.

One whole grain is ``ONE = 10**18`` raw units. Amounts are plain Python ints, so sums
and products are exact at any magnitude; floats only appear at the presentation edge
(``format_grain``) and never feed back into accounting.

Notes:
    - ``split_budget`` is the only place where a budget is divided. It is exact: the
      returned parts always sum to the budget.
    - Parsing accepts decimal strings only; scientific notation is rejected.

Examples:
    >>> from credgrain.ledger.grain import ONE, from_float_string, format_grain, split_budget
    >>> from_float_string("1.5") == ONE + ONE // 2
    True
    >>> format_grain(1500 * ONE, decimals=2, suffix="g")
    '1,500.00g'
    >>> split_budget(10, [1, 1, 1])
    [4, 3, 3]
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from decimal import Context, Decimal, InvalidOperation
from fractions import Fraction
from typing import NewType

from credgrain.core.constants import GRAIN_DECIMAL_PRECISION
from credgrain.core.errors import InputError

__all__ = [
    "Grain",
    "ONE",
    "ZERO",
    "DECIMAL_PRECISION",
    "from_string",
    "from_float_string",
    "from_integer",
    "format_grain",
    "split_budget",
]

Grain = NewType("Grain", int)

DECIMAL_PRECISION: int = GRAIN_DECIMAL_PRECISION
ONE: Grain = Grain(10**DECIMAL_PRECISION)
ZERO: Grain = Grain(0)

_INTEGER_RE = re.compile(r"^[0-9]+$")
_DECIMAL_RE = re.compile(r"^[0-9]+(\.[0-9]*)?$|^\.[0-9]+$")


def from_string(value: str) -> Grain:
    """
    Parse a non-negative decimal integer string of raw units.

    Raises:
        InputError: If the string is not a plain non-negative integer.
    """
    text = value.strip() if isinstance(value, str) else value
    if not isinstance(text, str) or not _INTEGER_RE.match(text):
        raise InputError(f"not a valid grain amount: {value!r}")
    return Grain(int(text))


def from_float_string(value: str) -> Grain:
    """
    Parse a decimal string of whole grain (e.g. ``"12.5"``) into raw units.

    Digits beyond the 18th decimal place are truncated.

    Raises:
        InputError: If the string is not a plain non-negative decimal number.
    """
    text = value.strip() if isinstance(value, str) else value
    if not isinstance(text, str) or not _DECIMAL_RE.match(text):
        raise InputError(f"not a valid grain decimal: {value!r}")
    try:
        # enough precision that shifting the exponent never rounds
        raw = Decimal(text).scaleb(DECIMAL_PRECISION, Context(prec=len(text) + DECIMAL_PRECISION))
    except InvalidOperation as exc:
        raise InputError(f"not a valid grain decimal: {value!r}") from exc
    return Grain(int(raw))


def from_integer(value: int) -> Grain:
    """Convert a non-negative count of whole grain into raw units."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InputError(f"grain integer must be a non-negative int, got {value!r}")
    return Grain(value * ONE)


def format_grain(amount: int, decimals: int = 0, suffix: str = "") -> str:
    """
    Render a raw amount as whole grain with thousands separators.

    Args:
        amount (int): Raw units (may be negative).
        decimals (int): Digits after the decimal point, 0..18; extra precision is truncated.
        suffix (str): Appended verbatim (e.g. ``"g"``).

    Returns:
        str: Human-readable amount such as ``"-1,234.50g"``.
    """
    if not 0 <= decimals <= DECIMAL_PRECISION:
        raise InputError(f"decimals must be in [0, {DECIMAL_PRECISION}], got {decimals!r}")
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), ONE)
    text = f"{whole:,}"
    if decimals:
        digits = str(frac).rjust(DECIMAL_PRECISION, "0")[:decimals]
        text = f"{text}.{digits}"
    return f"{sign}{text}{suffix}"


def split_budget(budget: int, weights: Sequence[Fraction | int]) -> list[Grain]:
    """
    Split ``budget`` proportionally to ``weights`` with exact integer parts.

    Each part receives ``floor(budget * w / W)``; the leftover raw units go one each to
    the largest fractional remainders, ties broken by lower index.

    Args:
        budget (int): Non-negative raw amount.
        weights (Sequence[Fraction | int]): Non-negative weights with a positive sum.

    Returns:
        list[Grain]: Parts aligned with ``weights`` that sum to ``budget``.

    Raises:
        InputError: If the budget or a weight is negative, or all weights are zero.
    """
    if budget < 0:
        raise InputError(f"budget must be non-negative, got {budget!r}")
    fracs = [Fraction(w) for w in weights]
    if any(w < 0 for w in fracs):
        raise InputError("split weights must be non-negative")
    total = sum(fracs, Fraction(0))
    if total <= 0:
        raise InputError("split weights must have a positive sum")

    exact = [budget * w / total for w in fracs]
    parts = [int(x) for x in exact]  # floor for non-negative Fractions
    leftover = budget - sum(parts)
    order = sorted(range(len(exact)), key=lambda i: (-(exact[i] - parts[i]), i))
    for i in order[:leftover]:
        parts[i] += 1
    return [Grain(p) for p in parts]
