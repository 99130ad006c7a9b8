"""Exact conversion between human-entered token amounts and base units.

Amounts are converted once, at the orchestrator boundary. Everything past that
point works on integers in the smallest indivisible unit (10**-18 IBT); floats
are rejected outright.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Union

from ..errors import InvalidTransferRequest

TOKEN_DECIMALS = 18
BASE_UNIT = 10 ** TOKEN_DECIMALS

_PLAIN_DECIMAL = re.compile(r"^(\d+\.?\d*|\.\d+)$")


def parse_amount(value: Union[str, Decimal], decimals: int = TOKEN_DECIMALS) -> int:
    """Convert a decimal token amount to base units without rounding.

    Raises InvalidTransferRequest for floats, malformed strings, non-positive
    amounts, and amounts with more fractional digits than ``decimals``.
    """
    if isinstance(value, bool) or not isinstance(value, (str, Decimal)):
        raise InvalidTransferRequest(
            f"Amount must be a decimal string, got {type(value).__name__}",
            field="amount",
            value=value,
        )

    if isinstance(value, str):
        text = value.strip()
        if not _PLAIN_DECIMAL.match(text):
            raise InvalidTransferRequest(
                f"Amount {value!r} is not a plain decimal number",
                field="amount",
                value=value,
            )
        try:
            number = Decimal(text)
        except InvalidOperation as e:
            raise InvalidTransferRequest(
                f"Amount {value!r} is not a decimal number",
                field="amount",
                value=value,
                cause=e,
            )
    else:
        number = value
        if not number.is_finite():
            raise InvalidTransferRequest(
                "Amount must be finite", field="amount", value=value
            )

    sign, digits, exponent = number.as_tuple()
    coefficient = int("".join(str(d) for d in digits)) if digits else 0
    shift = exponent + decimals
    if shift >= 0:
        base_units = coefficient * 10 ** shift
    else:
        divisor = 10 ** -shift
        if coefficient % divisor:
            raise InvalidTransferRequest(
                f"Amount {value} has more than {decimals} decimal places",
                field="amount",
                value=value,
            )
        base_units = coefficient // divisor

    if sign:
        base_units = -base_units

    if base_units <= 0:
        raise InvalidTransferRequest(
            "Amount must be greater than zero", field="amount", value=value
        )

    return base_units


def format_amount(base_units: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Render base units as a decimal string, e.g. ``10000000000000000000 -> "10.0"``."""
    if isinstance(base_units, bool) or not isinstance(base_units, int):
        raise TypeError("base_units must be an int")

    sign = "-" if base_units < 0 else ""
    whole, fraction = divmod(abs(base_units), 10 ** decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{fraction_text}"
