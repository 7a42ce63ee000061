"""Shared pytest fixtures for SwapSim tests.

Every test gets a fresh in-process chain with a deployed router and two
freely mintable tokens; nothing is shared between tests.
"""

import pytest

from swapsim.constants import SCALE
from swapsim.ledger import Chain
from swapsim.swap import SwapRouter


@pytest.fixture
def chain():
    return Chain()


@pytest.fixture
def admin(chain):
    return chain.accounts[0]


@pytest.fixture
def alice(chain):
    return chain.accounts[1]


@pytest.fixture
def bob(chain):
    return chain.accounts[2]


@pytest.fixture
def router(chain, admin):
    return SwapRouter(chain, admin)


@pytest.fixture
def usdc(chain):
    return chain.deploy_token("USDC", 6)


@pytest.fixture
def sky(chain):
    return chain.deploy_token("SKY")


@pytest.fixture
def native(router):
    """Handle of the native currency in swap paths."""
    return router.native_wrapper


@pytest.fixture
def funded_alice(chain, alice, usdc):
    """Alice holds 1 000 ETH and 1 000 000 USDC (raw units)."""
    chain.fund_eth(alice, 1_000 * SCALE)
    usdc.mint(alice, 1_000_000)
    return alice
