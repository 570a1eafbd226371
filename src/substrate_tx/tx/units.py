"""Balance unit conversion between display units (DOT) and planck.

The smallest indivisible unit is ``10 ** -decimals`` of the display unit
(12 decimals by default). Conversion into planck is exact; conversion back
to display units is rounded to 6 decimal places.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation, localcontext

from substrate_tx.errors.tx_errors import InvalidAmountError

DEFAULT_DECIMALS = 12
DISPLAY_PLACES = 6

# Balances are u128 (39 digits); the default 28-digit context would round them
_CONTEXT = Context(prec=80)


def to_smallest_unit(amount: int | str | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a display-unit amount to an integer number of planck.

    Args:
        amount: Amount in display units. Floats are rejected; pass a string
            or ``Decimal`` for fractional values.
        decimals: Number of decimals of the chain's token.

    Raises:
        InvalidAmountError: If the amount is not numeric, not finite, or
            has more precision than the token supports.
    """
    if isinstance(amount, (bool, float)):
        msg = f"amount must be an int, str or Decimal, got {type(amount).__name__}"
        raise InvalidAmountError(msg)
    try:
        value = Decimal(str(amount).strip()) if isinstance(amount, str) else Decimal(amount)
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidAmountError(f"amount is not numeric: {amount!r}") from exc
    if not value.is_finite():
        raise InvalidAmountError(f"amount is not finite: {amount!r}")

    with localcontext(_CONTEXT):
        scaled = value.scaleb(decimals)
        exact = scaled == scaled.to_integral_value()
    if not exact:
        raise InvalidAmountError(f"amount {amount!r} has more than {decimals} decimal places")
    return int(scaled)


def from_smallest_unit(planck: int | str, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render planck as a display-unit string with 6 decimal places."""
    try:
        value = Decimal(int(planck))
    except (ValueError, TypeError) as exc:
        raise InvalidAmountError(f"planck amount is not an integer: {planck!r}") from exc
    with localcontext(_CONTEXT):
        display = value.scaleb(-decimals)
        places = Decimal(1).scaleb(-DISPLAY_PLACES)
        return str(display.quantize(places, rounding=ROUND_HALF_UP))


def format_amount(planck: int, symbol: str, decimals: int = DEFAULT_DECIMALS) -> str:
    """``1500000000000`` -> ``"1.500000 DOT"``."""
    return f"{from_smallest_unit(planck, decimals)} {symbol}".rstrip()
