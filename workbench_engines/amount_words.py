"""
workbench_engines.amount_words -- English words for a payment amount.

Responsibility:
    Render the ``amount_in_words`` line printed on a request for payment,
    e.g. ``Decimal("2500.75")`` -> ``"Two Thousand Five Hundred Pesos and
    75/100"``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Zero renders as ``"Zero <currency>"``.
    - Cents are rounded half-up to two places and rendered as ``NN/100``
      only when non-zero.
    - Display only; the Decimal amount stays authoritative.

Failure modes:
    - ValueError for negative or non-finite amounts, or amounts of a
      trillion or more.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

_ONES = (
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
)
_TENS = (
    "", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety",
)
_SCALES = (
    (1_000_000_000, "Billion"),
    (1_000_000, "Million"),
    (1_000, "Thousand"),
)

MAX_AMOUNT = Decimal(1_000_000_000_000)


def _below_thousand(n: int) -> list[str]:
    words: list[str] = []
    hundreds, rest = divmod(n, 100)
    if hundreds:
        words += [_ONES[hundreds], "Hundred"]
    if rest >= 20:
        tens, ones = divmod(rest, 10)
        words.append(_TENS[tens])
        if ones:
            words.append(_ONES[ones])
    elif rest:
        words.append(_ONES[rest])
    return words


def integer_to_words(n: int) -> str:
    """Words for a non-negative integer below one trillion."""
    if n == 0:
        return "Zero"
    words: list[str] = []
    for scale, name in _SCALES:
        count, n = divmod(n, scale)
        if count:
            words += _below_thousand(count) + [name]
    words += _below_thousand(n)
    return " ".join(words)


def amount_to_words(amount: Decimal, currency_label: str = "Pesos") -> str:
    """Render ``amount`` as words followed by the currency label."""
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Cannot render amount in words: {amount}")
    rounded = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if rounded >= MAX_AMOUNT:
        raise ValueError(f"Amount too large to render in words: {amount}")

    whole = int(rounded)
    cents = int((rounded - whole) * 100)

    text = f"{integer_to_words(whole)} {currency_label}"
    if cents:
        text += f" and {cents:02d}/100"
    return text
