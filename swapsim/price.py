"""Directional fixed-point price table with reverse-price inference."""

from __future__ import annotations

import copy
import logging
from decimal import Decimal, localcontext
from typing import Any

from .constants import DEFAULT_PRICE, SCALE, SCALE_PRODUCT
from .errors import PreconditionViolation
from .ledger import check_uint256, to_checksum

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Fixed-point helpers
# ---------------------------------------------------------------------------

def to_fixed(value: str | int | Decimal) -> int:
    """Convert a human-readable price (e.g. "2.5") to 18-decimal fixed point."""
    with localcontext() as ctx:
        ctx.prec = 100
        try:
            scaled = Decimal(value) * SCALE
        except ArithmeticError:
            raise PreconditionViolation("toFixed", f"not a number: {value!r}") from None
    if not scaled.is_finite() or scaled != scaled.to_integral_value():
        raise PreconditionViolation("toFixed", f"{value} is not representable with 18 decimals")
    return int(scaled)


def from_fixed(price: int) -> Decimal:
    """Convert an 18-decimal fixed-point price back to a Decimal."""
    return Decimal(price) / SCALE


def invert_price(price: int) -> int:
    """Return the fixed-point inverse of *price* (``SCALE**2 // price``)."""
    if price <= 0:
        raise PreconditionViolation("invertPrice", f"cannot invert price {price}")
    return SCALE_PRODUCT // price


# ---------------------------------------------------------------------------
# Price table
# ---------------------------------------------------------------------------

class PriceTable:
    """Admin-written prices keyed by ordered (base, quote) pairs.

    ``price(base, quote) / SCALE`` units of quote buy one unit of base. Only
    the direction that was written is stored; the other one is derived on
    read. A stored zero reads as "unset".
    """

    def __init__(self) -> None:
        self._prices: dict[tuple[str, str], int] = {}
        self._registered: set[str] = set()

    def set_price(self, base: str, quote: str, price: int) -> None:
        base = to_checksum(base, "setPrice")
        quote = to_checksum(quote, "setPrice")
        check_uint256(price, "setPrice", "price")
        if price == 0:
            logger.warning("zero price written for %s/%s; the pair reads as unset", base, quote)
        self._prices[(base, quote)] = price
        self._registered.add(base)
        self._registered.add(quote)

    def get_price(self, base: str, quote: str) -> int:
        base = to_checksum(base, "getPrice")
        quote = to_checksum(quote, "getPrice")

        forward = self._prices.get((base, quote), 0)
        if forward:
            return forward

        reverse = self._prices.get((quote, base), 0)
        if reverse:
            return invert_price(reverse)

        return DEFAULT_PRICE

    def register(self, currency: str) -> None:
        self._registered.add(to_checksum(currency, "registerToken"))

    def is_registered(self, currency: str) -> bool:
        return to_checksum(currency, "isTokenRegistered") in self._registered

    def registered(self) -> tuple[str, ...]:
        return tuple(sorted(self._registered))

    def entries(self) -> dict[tuple[str, str], int]:
        return dict(self._prices)

    # -- snapshot support -----------------------------------------------------

    def snapshot(self) -> Any:
        return copy.deepcopy((self._prices, self._registered))

    def restore(self, state: Any) -> None:
        prices, registered = copy.deepcopy(state)
        self._prices = prices
        self._registered = registered
