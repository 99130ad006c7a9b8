"""
Coin selection for the object-based chain.

Value on Sui is spread across coin objects. A bridge burn consumes exactly one
coin, so the selector picks the first coin, in coin-id order, whose balance
covers the request. Fragmented balances are reported, never merged here.
"""

from typing import Iterable, List

from ..errors import NoCoinSufficientError
from ..logging import get_logger
from .bridge_types import SpendableUnit

logger = get_logger(__name__)


def order_units(units: Iterable[SpendableUnit]) -> List[SpendableUnit]:
    """Stable ordering by unit id (ties broken by balance)."""
    return sorted(units, key=lambda unit: (unit.unit_id, unit.balance))


class CoinSelector:
    """First-fit coin selector."""

    def select(self, units: Iterable[SpendableUnit], required: int) -> SpendableUnit:
        """Return the first unit whose balance is at least ``required``.

        Raises NoCoinSufficientError when no single unit is large enough, even
        if the units together would cover the amount.
        """
        ordered = order_units(units)
        for unit in ordered:
            if unit.balance >= required:
                logger.debug(
                    "Coin Selection - Complete",
                    extra={
                        "unit_id": unit.unit_id,
                        "unit_balance": str(unit.balance),
                        "required": str(required),
                        "candidates": len(ordered),
                    },
                )
                return unit

        total = sum(unit.balance for unit in ordered)
        if total >= required:
            message = (
                f"No single coin found with sufficient balance for {required} "
                f"(total {total} across {len(ordered)} coins). "
                "You may need to merge your coins."
            )
        else:
            message = (
                f"Insufficient balance: {required} required, {total} available "
                f"across {len(ordered)} coins"
            )
        logger.warning(
            "Coin Selection - Failed",
            extra={"required": str(required), "total": str(total), "candidates": len(ordered)},
        )
        raise NoCoinSufficientError(
            message, unit_count=len(ordered), required=required, available=total
        )


def select_unit(units: Iterable[SpendableUnit], required: int) -> SpendableUnit:
    """Module-level shortcut for ``CoinSelector().select``."""
    return CoinSelector().select(units, required)
