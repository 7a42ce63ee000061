"""Exact-output swaps against the admin-set price table.

The router is a test double for a Uniswap-V2-style router: it never holds
liquidity. The output currency is minted to the recipient through its free
``mint`` and the input is taken into router custody at the fixed-point
price from :class:`~swapsim.price.PriceTable`.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Sequence

from .constants import SCALE, UINT256_MAX, ZERO_ADDRESS
from .errors import BudgetExceeded, PreconditionViolation, SwapError, TransferFailure, Unauthorized
from .ledger import Chain, Debitable, Mintable, check_uint256, to_checksum
from .price import PriceTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapResult:
    """Realized amounts of a swap.

    Attributes
    ----------
    amount_in : int
        Amount of ``path[0]`` paid.
    amount_out : int
        Amount of ``path[-1]`` minted to the recipient.
    """

    amount_in: int
    amount_out: int

    def __iter__(self) -> Iterator[int]:
        return iter((self.amount_in, self.amount_out))


class SwapRouter:
    """Price oracle and exact-output swap executor.

    Parameters
    ----------
    chain : Chain
        Ledger the router settles against.
    owner : str
        Address allowed to call the admin operations.
    native_wrapper : str
        Handle that stands for the native currency at the start of a path.
    """

    def __init__(self, chain: Chain, owner: str, native_wrapper: str = ZERO_ADDRESS) -> None:
        self.chain = chain
        self.address = chain.new_address("SwapRouterMock")
        self._owner = to_checksum(owner, "constructor")
        self._native_wrapper = to_checksum(native_wrapper, "constructor")
        self._prices = PriceTable()
        chain.add_contract(self)

    # -- read-only accessors --------------------------------------------------

    @property
    def owner(self) -> str:
        return self._owner

    @property
    def native_wrapper(self) -> str:
        return self._native_wrapper

    @property
    def prices(self) -> PriceTable:
        return self._prices

    def get_price(self, base: str, quote: str) -> int:
        return self._prices.get_price(base, quote)

    def is_token_registered(self, currency: str) -> bool:
        return self._prices.is_registered(currency)

    def get_amounts_in(self, desired_output: int, path: Sequence[str]) -> list[int]:
        """Quote the payment for *desired_output* of ``path[-1]``.

        Returns ``[payment, desired_output]``.
        """
        path = self._check_path("getAmountsIn", path)
        return [self._payment("getAmountsIn", desired_output, path), desired_output]

    # -- admin ----------------------------------------------------------------

    def set_price(self, base: str, quote: str, price: int, *, sender: str) -> None:
        with self._transaction("setPrice"):
            self._only_owner("setPrice", sender)
            self._prices.set_price(base, quote, price)
        logger.info("price %s/%s set to %d", base, quote, price)

    def register_token(self, currency: str, *, sender: str) -> None:
        with self._transaction("registerToken"):
            self._only_owner("registerToken", sender)
            self._prices.register(currency)
        logger.info("registered %s", currency)

    def set_native_wrapper(self, handle: str, *, sender: str) -> None:
        with self._transaction("setNativeWrapper"):
            self._only_owner("setNativeWrapper", sender)
            self._native_wrapper = to_checksum(handle, "setNativeWrapper")
        logger.info("native wrapper set to %s", self._native_wrapper)

    def transfer_ownership(self, new_owner: str, *, sender: str) -> None:
        with self._transaction("transferOwnership"):
            self._only_owner("transferOwnership", sender)
            new_owner = to_checksum(new_owner, "transferOwnership")
            if new_owner == ZERO_ADDRESS:
                raise PreconditionViolation("transferOwnership", "new owner is the zero address")
            previous, self._owner = self._owner, new_owner
        logger.info("ownership transferred from %s to %s", previous, new_owner)

    # -- swaps ----------------------------------------------------------------

    def swap_native_for_exact_output(
        self,
        desired_output: int,
        path: Sequence[str],
        recipient: str,
        *,
        sender: str,
        value: int,
        deadline: int | None = None,
    ) -> SwapResult:
        """Buy exactly *desired_output* of ``path[-1]`` with native currency.

        *value* is the native amount sent along with the call; anything
        above the required payment is refunded to *sender*.

        Raises
        ------
        PreconditionViolation
            Wrong native sentinel, short path, unregistered output,
            expired deadline.
        BudgetExceeded
            *value* is below the required payment.
        TransferFailure
            *sender* cannot cover *value*, or the output cannot be minted.
        """
        op = "swapETHForExactTokens"
        with self._transaction(op):
            path = self._check_path(op, path)
            if path[0] != self._native_wrapper:
                raise PreconditionViolation(
                    op, f"path must start with native wrapper {self._native_wrapper}, got {path[0]}"
                )
            self._check_deadline(op, deadline)
            sender = to_checksum(sender, op)
            recipient = to_checksum(recipient, op)
            check_uint256(value, op, "value")

            payment = self._payment(op, desired_output, path)
            if value < payment:
                raise BudgetExceeded(op, payment, value)

            self.chain.transfer_native(sender, self.address, value)
            self._mint_output(op, path[-1], recipient, desired_output)
            refund = value - payment
            if refund > 0:
                self.chain.transfer_native(self.address, sender, refund)

        logger.info(
            "%s: paid %d native for %d %s to %s (refund %d)",
            op, payment, desired_output, path[-1], recipient, refund,
        )
        return SwapResult(payment, desired_output)

    def swap_token_for_exact_output(
        self,
        desired_output: int,
        max_input: int,
        path: Sequence[str],
        recipient: str,
        *,
        sender: str,
        deadline: int | None = None,
    ) -> SwapResult:
        """Buy exactly *desired_output* of ``path[-1]`` paying in ``path[0]``.

        The payment is pulled from *sender* with ``transferFrom``, so the
        router must hold a sufficient allowance.

        Raises
        ------
        PreconditionViolation
            Zero input handle, short path, unregistered output, expired
            deadline.
        BudgetExceeded
            The payment exceeds *max_input*.
        TransferFailure
            The debit or the mint fails.
        """
        op = "swapTokensForExactTokens"
        with self._transaction(op):
            path = self._check_path(op, path)
            if path[0] == ZERO_ADDRESS:
                raise PreconditionViolation(op, "input currency is the zero address")
            self._check_deadline(op, deadline)
            sender = to_checksum(sender, op)
            recipient = to_checksum(recipient, op)
            check_uint256(max_input, op, "max_input")

            payment = self._payment(op, desired_output, path)
            if payment > max_input:
                raise BudgetExceeded(op, payment, max_input)

            self._debitable(op, path[0]).transfer_from(self.address, sender, self.address, payment)
            self._mint_output(op, path[-1], recipient, desired_output)

        logger.info(
            "%s: paid %d %s for %d %s to %s",
            op, payment, path[0], desired_output, path[-1], recipient,
        )
        return SwapResult(payment, desired_output)

    # -- internals ------------------------------------------------------------

    @contextmanager
    def _transaction(self, op: str) -> Iterator[None]:
        try:
            with self.chain.atomic():
                yield
        except SwapError as exc:
            logger.warning("%s reverted: %s", op, exc.reason)
            raise

    def _only_owner(self, op: str, sender: str) -> None:
        if to_checksum(sender, op) != self._owner:
            raise Unauthorized(op, f"caller {sender} is not the owner")

    def _check_path(self, op: str, path: Sequence[str]) -> list[str]:
        if isinstance(path, str) or len(path) < 2:
            raise PreconditionViolation(op, "path needs at least two currencies")
        path = [to_checksum(currency, op) for currency in path]
        if not self._prices.is_registered(path[-1]):
            raise PreconditionViolation(op, f"output currency {path[-1]} is not registered")
        return path

    def _check_deadline(self, op: str, deadline: int | None) -> None:
        if deadline is not None and self.chain.timestamp > deadline:
            raise PreconditionViolation(
                op, f"deadline {deadline} passed (now {self.chain.timestamp})"
            )

    def _payment(self, op: str, desired_output: int, path: list[str]) -> int:
        check_uint256(desired_output, op, "desired_output")
        price = self._prices.get_price(path[0], path[-1])
        if price == 0:
            raise PreconditionViolation(op, f"price of {path[0]}/{path[-1]} rounds to zero")
        if desired_output * SCALE > UINT256_MAX:
            raise PreconditionViolation(op, f"desired_output {desired_output} overflows")
        return desired_output * SCALE // price

    def _mint_output(self, op: str, currency: str, recipient: str, amount: int) -> None:
        token: Mintable | None = self.chain.token(currency)
        if token is None:
            raise TransferFailure(op, f"{currency} has no mint capability")
        token.mint(recipient, amount)

    def _debitable(self, op: str, currency: str) -> Debitable:
        token = self.chain.token(currency)
        if token is None:
            raise TransferFailure(op, f"{currency} is not a token")
        return token

    # -- snapshot support -----------------------------------------------------

    def snapshot(self) -> Any:
        return (self._owner, self._native_wrapper, self._prices.snapshot())

    def restore(self, state: Any) -> None:
        self._owner, self._native_wrapper, prices = state
        self._prices.restore(prices)
