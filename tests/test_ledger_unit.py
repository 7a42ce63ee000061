"""Unit tests for the in-process chain and the mock ERC-20."""

import pytest
from web3 import Web3

from swapsim.constants import UINT256_MAX, ZERO_ADDRESS
from swapsim.errors import PreconditionViolation, TransferFailure
from swapsim.ledger import Chain, check_uint256, to_checksum


# ---------------------------------------------------------------------------
# Addresses
# ---------------------------------------------------------------------------

class TestAddresses:
    def test_accounts_are_checksummed_and_distinct(self, chain):
        assert len(chain.accounts) == 10
        assert len(set(chain.accounts)) == 10
        for account in chain.accounts:
            assert Web3.is_checksum_address(account)

    def test_addresses_are_deterministic(self):
        assert Chain().accounts == Chain().accounts

    def test_to_checksum_normalizes(self):
        lower = "0x000000000000000000000000000000000000dead"
        assert to_checksum(lower, "test") == "0x000000000000000000000000000000000000dEaD"

    @pytest.mark.parametrize("bad", ["", "0x12", "dead", None, 42])
    def test_to_checksum_rejects(self, bad):
        with pytest.raises(PreconditionViolation, match="invalid address"):
            to_checksum(bad, "test")

    @pytest.mark.parametrize("bad", [-1, UINT256_MAX + 1, 1.5, True, "1"])
    def test_check_uint256_rejects(self, bad):
        with pytest.raises(PreconditionViolation):
            check_uint256(bad, "test")

    def test_check_uint256_bounds(self):
        assert check_uint256(0, "test") == 0
        assert check_uint256(UINT256_MAX, "test") == UINT256_MAX


# ---------------------------------------------------------------------------
# Mock ERC-20
# ---------------------------------------------------------------------------

class TestMockERC20:
    def test_mint(self, usdc, alice):
        usdc.mint(alice, 500)
        assert usdc.balance_of(alice) == 500
        assert usdc.total_supply == 500

    def test_mint_to_zero_address_fails(self, usdc):
        with pytest.raises(TransferFailure, match="zero address"):
            usdc.mint(ZERO_ADDRESS, 1)

    def test_transfer(self, usdc, alice, bob):
        usdc.mint(alice, 500)
        usdc.transfer(alice, bob, 200)
        assert usdc.balance_of(alice) == 300
        assert usdc.balance_of(bob) == 200
        assert usdc.total_supply == 500

    def test_transfer_over_balance_fails(self, usdc, alice, bob):
        usdc.mint(alice, 10)
        with pytest.raises(TransferFailure, match="balance 10"):
            usdc.transfer(alice, bob, 11)

    def test_transfer_from_spends_allowance(self, usdc, alice, bob, admin):
        usdc.mint(alice, 100)
        usdc.approve(alice, bob, 60)
        usdc.transfer_from(bob, alice, admin, 40)
        assert usdc.balance_of(admin) == 40
        assert usdc.allowance(alice, bob) == 20

    def test_transfer_from_over_allowance_fails(self, usdc, alice, bob):
        usdc.mint(alice, 100)
        usdc.approve(alice, bob, 10)
        with pytest.raises(TransferFailure, match="allowance 10"):
            usdc.transfer_from(bob, alice, bob, 11)

    def test_infinite_allowance_not_decremented(self, usdc, alice, bob):
        usdc.mint(alice, 100)
        usdc.approve(alice, bob, UINT256_MAX)
        usdc.transfer_from(bob, alice, bob, 100)
        assert usdc.allowance(alice, bob) == UINT256_MAX

    def test_owner_needs_no_allowance(self, usdc, alice, bob):
        usdc.mint(alice, 100)
        usdc.transfer_from(alice, alice, bob, 100)
        assert usdc.balance_of(bob) == 100


# ---------------------------------------------------------------------------
# Chain: native balances, tokens, snapshots
# ---------------------------------------------------------------------------

class TestChain:
    def test_fund_and_transfer_native(self, chain, alice, bob):
        chain.fund_eth(alice, 100)
        chain.transfer_native(alice, bob, 30)
        assert chain.native_balance(alice) == 70
        assert chain.native_balance(bob) == 30

    def test_native_overdraft_fails(self, chain, alice, bob):
        with pytest.raises(TransferFailure, match="native balance 0"):
            chain.transfer_native(alice, bob, 1)

    def test_token_lookup(self, chain, usdc, alice):
        assert chain.token(usdc.address) is usdc
        assert chain.token(usdc.address.lower()) is usdc
        assert chain.token(alice) is None

    def test_add_token_at_fixed_address(self, chain):
        address = "0x509Ee0d083DdF8AC028f2a56731412edD63223B9"
        token = chain.add_token(address.lower(), "USDT", 6)
        assert token.address == Web3.to_checksum_address(address)
        assert chain.token(token.address) is token
        assert token.decimals == 6

    def test_add_token_at_zero_address_rejected(self, chain):
        with pytest.raises(PreconditionViolation):
            chain.add_token(ZERO_ADDRESS, "ETH")

    def test_snapshot_and_revert(self, chain, usdc, alice, bob):
        chain.fund_eth(alice, 100)
        usdc.mint(alice, 5)
        snapshot_id = chain.snapshot()
        chain.transfer_native(alice, bob, 100)
        usdc.transfer(alice, bob, 5)
        chain.revert(snapshot_id)
        assert chain.native_balance(alice) == 100
        assert usdc.balance_of(alice) == 5
        assert usdc.balance_of(bob) == 0

    def test_revert_consumes_later_snapshots(self, chain):
        first = chain.snapshot()
        second = chain.snapshot()
        chain.revert(first)
        with pytest.raises(KeyError):
            chain.revert(second)

    def test_atomic_rolls_back_on_error(self, chain, usdc, alice, bob):
        usdc.mint(alice, 10)
        with pytest.raises(TransferFailure):
            with chain.atomic():
                usdc.transfer(alice, bob, 10)
                usdc.transfer(alice, bob, 1)
        assert usdc.balance_of(alice) == 10
        assert usdc.balance_of(bob) == 0

    def test_atomic_commits_on_success(self, chain, usdc, alice, bob):
        usdc.mint(alice, 10)
        with chain.atomic():
            usdc.transfer(alice, bob, 4)
        assert usdc.balance_of(bob) == 4

    def test_nested_atomic_inner_failure_caught(self, chain, usdc, alice, bob):
        usdc.mint(alice, 10)
        with chain.atomic():
            usdc.transfer(alice, bob, 3)
            with pytest.raises(TransferFailure):
                with chain.atomic():
                    usdc.transfer(alice, bob, 2)
                    usdc.transfer(alice, bob, 100)
        assert usdc.balance_of(bob) == 3

    def test_timestamp(self, chain):
        chain.set_timestamp(1_700_000_000)
        assert chain.timestamp == 1_700_000_000
