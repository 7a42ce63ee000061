"""In-process chain state: native balances, mock tokens, snapshots.

The router settles against this ledger instead of a live node. It mirrors
the pieces of an Anvil instance the swap simulator relies on:
  - ``fund_eth`` / native balances        (anvil_setBalance)
  - ``snapshot`` / ``revert``             (evm_snapshot / evm_revert)
  - ``set_timestamp``                     (evm_setNextBlockTimestamp)
  - freely mintable ERC-20 mocks

State-changing calls run inside :meth:`Chain.atomic`, which serializes
them and restores the pre-call snapshot if anything raises.
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Protocol

from web3 import Web3

from .constants import UINT256_MAX, ZERO_ADDRESS
from .errors import PreconditionViolation, TransferFailure

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS = 10


def to_checksum(address: str, operation: str) -> str:
    """Normalize *address* to checksum form or raise PreconditionViolation."""
    if not isinstance(address, str) or not Web3.is_address(address):
        raise PreconditionViolation(operation, f"invalid address {address!r}")
    return Web3.to_checksum_address(address)


def check_uint256(amount: int, operation: str, name: str = "amount") -> int:
    """Reject values that would not fit in a uint256."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise PreconditionViolation(operation, f"{name} must be an int, got {amount!r}")
    if amount < 0 or amount > UINT256_MAX:
        raise PreconditionViolation(operation, f"{name} {amount} out of uint256 range")
    return amount


# ---------------------------------------------------------------------------
# Capabilities consumed by the router
# ---------------------------------------------------------------------------

class Mintable(Protocol):
    """Free-mint capability exposed by output currencies."""

    def mint(self, to: str, amount: int) -> None:
        ...


class Debitable(Protocol):
    """Debit-from-caller capability exposed by input currencies."""

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        ...


# ---------------------------------------------------------------------------
# Mock ERC-20
# ---------------------------------------------------------------------------

class MockERC20:
    """Minimal ERC-20 with an unrestricted ``mint``.

    Balances and allowances are plain dicts keyed by checksummed address.
    Mutations hold *lock*; a token deployed through :class:`Chain` shares the
    chain's lock so it cannot change under a running transaction.
    """

    def __init__(
        self,
        address: str,
        symbol: str,
        decimals: int = 18,
        lock: threading.RLock | None = None,
    ) -> None:
        self.address = address
        self.symbol = symbol
        self.decimals = decimals
        self._lock = lock if lock is not None else threading.RLock()
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self._total_supply: int = 0

    def __repr__(self) -> str:
        return f"MockERC20({self.symbol}, {self.address})"

    # -- views ----------------------------------------------------------------

    def balance_of(self, account: str) -> int:
        return self._balances.get(to_checksum(account, "balanceOf"), 0)

    def allowance(self, owner: str, spender: str) -> int:
        key = (to_checksum(owner, "allowance"), to_checksum(spender, "allowance"))
        return self._allowances.get(key, 0)

    @property
    def total_supply(self) -> int:
        return self._total_supply

    # -- mutations ------------------------------------------------------------

    def mint(self, to: str, amount: int) -> None:
        to = to_checksum(to, "mint")
        check_uint256(amount, "mint")
        if to == ZERO_ADDRESS:
            raise TransferFailure("mint", "mint to the zero address")
        with self._lock:
            if self._total_supply + amount > UINT256_MAX:
                raise TransferFailure("mint", "total supply overflow")
            self._total_supply += amount
            self._balances[to] = self._balances.get(to, 0) + amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        self._move(to_checksum(sender, "transfer"), to_checksum(to, "transfer"), amount)

    def approve(self, owner: str, spender: str, amount: int) -> None:
        key = (to_checksum(owner, "approve"), to_checksum(spender, "approve"))
        check_uint256(amount, "approve")
        with self._lock:
            self._allowances[key] = amount

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        spender = to_checksum(spender, "transferFrom")
        owner = to_checksum(owner, "transferFrom")
        to = to_checksum(to, "transferFrom")
        check_uint256(amount, "transferFrom")
        with self._lock:
            allowed = self._allowances.get((owner, spender), 0)
            if spender != owner and allowed < amount:
                raise TransferFailure(
                    "transferFrom",
                    f"{self.symbol} allowance {allowed} of {spender} below {amount}",
                )
            self._move(owner, to, amount)
            if spender != owner and allowed != UINT256_MAX:
                self._allowances[(owner, spender)] = allowed - amount

    def _move(self, owner: str, to: str, amount: int) -> None:
        check_uint256(amount, "transfer")
        if to == ZERO_ADDRESS:
            raise TransferFailure("transfer", "transfer to the zero address")
        with self._lock:
            balance = self._balances.get(owner, 0)
            if balance < amount:
                raise TransferFailure(
                    "transfer",
                    f"{self.symbol} balance {balance} of {owner} below {amount}",
                )
            self._balances[owner] = balance - amount
            self._balances[to] = self._balances.get(to, 0) + amount

    # -- snapshot support -----------------------------------------------------

    def snapshot(self) -> Any:
        with self._lock:
            return copy.deepcopy((self._balances, self._allowances, self._total_supply))

    def restore(self, state: Any) -> None:
        balances, allowances, supply = copy.deepcopy(state)
        with self._lock:
            self._balances = balances
            self._allowances = allowances
            self._total_supply = supply


# ---------------------------------------------------------------------------
# Chain
# ---------------------------------------------------------------------------

class Chain:
    """Process-local ledger standing in for the EVM runtime.

    Every mutator holds the chain's re-entrant lock, as do the tokens it
    deploys, so writes are serialized with any running :meth:`atomic` block.
    """

    def __init__(self, accounts: int = DEFAULT_ACCOUNTS) -> None:
        self._lock = threading.RLock()
        self._nonce = 0
        self._native: dict[str, int] = {}
        self._contracts: dict[str, Any] = {}
        self._snapshots: dict[int, tuple] = {}
        self._next_snapshot = 1
        self.timestamp = 0
        self.accounts = [self.new_address("account") for _ in range(accounts)]

    # -- addresses ------------------------------------------------------------

    def new_address(self, label: str) -> str:
        """Derive a fresh deterministic address from *label* and a nonce."""
        with self._lock:
            self._nonce += 1
            nonce = self._nonce
        digest = Web3.keccak(text=f"{label}:{nonce}")
        return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())

    # -- contracts ------------------------------------------------------------

    def add_contract(self, contract: Any) -> None:
        """Track *contract* so it takes part in snapshots."""
        with self._lock:
            self._contracts[contract.address] = contract

    def deploy_token(self, symbol: str, decimals: int = 18) -> MockERC20:
        token = MockERC20(self.new_address(symbol), symbol, decimals, lock=self._lock)
        self.add_contract(token)
        logger.debug("deployed %s at %s", symbol, token.address)
        return token

    def add_token(self, address: str, symbol: str, decimals: int = 18) -> MockERC20:
        """Place a mock token at a fixed *address* (e.g. a known testnet address)."""
        address = to_checksum(address, "addToken")
        if address == ZERO_ADDRESS:
            raise PreconditionViolation("addToken", "cannot place a token at the zero address")
        token = MockERC20(address, symbol, decimals, lock=self._lock)
        self.add_contract(token)
        return token

    def token(self, address: str) -> MockERC20 | None:
        contract = self._contracts.get(to_checksum(address, "token"))
        return contract if isinstance(contract, MockERC20) else None

    # -- native currency ------------------------------------------------------

    def fund_eth(self, address: str, wei: int) -> None:
        """Set *address*'s native balance to *wei*."""
        address = to_checksum(address, "fundEth")
        check_uint256(wei, "fundEth")
        with self._lock:
            self._native[address] = wei

    def native_balance(self, address: str) -> int:
        return self._native.get(to_checksum(address, "nativeBalance"), 0)

    def transfer_native(self, sender: str, to: str, wei: int) -> None:
        sender = to_checksum(sender, "transferNative")
        to = to_checksum(to, "transferNative")
        check_uint256(wei, "transferNative")
        with self._lock:
            balance = self._native.get(sender, 0)
            if balance < wei:
                raise TransferFailure(
                    "transferNative", f"native balance {balance} of {sender} below {wei}"
                )
            self._native[sender] = balance - wei
            self._native[to] = self._native.get(to, 0) + wei

    # -- time -----------------------------------------------------------------

    def set_timestamp(self, timestamp: int) -> None:
        check_uint256(timestamp, "setTimestamp", "timestamp")
        with self._lock:
            self.timestamp = timestamp

    # -- snapshots ------------------------------------------------------------

    def snapshot(self) -> int:
        """Record the current state and return its id.

        Deep-copies the state of every contract on the chain, so the cost
        of a snapshot (and of each :meth:`atomic` block) grows with the
        total chain state.
        """
        with self._lock:
            snapshot_id = self._next_snapshot
            self._next_snapshot += 1
            contracts = {
                address: contract.snapshot()
                for address, contract in self._contracts.items()
            }
            self._snapshots[snapshot_id] = (dict(self._native), contracts)
            return snapshot_id

    def revert(self, snapshot_id: int) -> None:
        """Restore the state recorded by *snapshot_id*.

        Like ``evm_revert``, the snapshot and every later one are consumed.
        """
        with self._lock:
            if snapshot_id not in self._snapshots:
                raise KeyError(f"unknown snapshot {snapshot_id}")
            native, contracts = self._snapshots[snapshot_id]
            self._native = dict(native)
            for address, state in contracts.items():
                self._contracts[address].restore(state)
            for sid in [s for s in self._snapshots if s >= snapshot_id]:
                del self._snapshots[sid]

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run the body as one transaction: all effects or none."""
        with self._lock:
            snapshot_id = self.snapshot()
            try:
                yield
            except Exception:
                self.revert(snapshot_id)
                raise
            else:
                self._snapshots.pop(snapshot_id, None)
