"""Money helpers using Decimal with two-digit precision."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_PRECISION = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    """Return value rounded to two decimal places with HALF_UP strategy."""

    return value.quantize(MONEY_PRECISION, rounding=ROUND_HALF_UP)


def parse_money(value: str | int | float | Decimal) -> Decimal:
    """Parse and normalize an amount into Decimal.

    Floats go through ``str`` so ``500.0`` compares equal to ``Decimal("500")``.
    Raises ``ValueError`` for anything that is not a finite number.
    """

    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid money amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid money amount: {value!r}")
    return quantize_money(amount)


def format_money(value: Decimal) -> str:
    """Render money as string with exactly two decimal places."""

    return f"{quantize_money(value):.2f}"
