"""Per-network router deployment: whitelisted tokens and seeded prices.

Addresses are the testnet deployments the real-estate system was wired to.
The ``local`` network has no fixed addresses; its tokens are deployed
fresh on the chain.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from web3 import Web3

from .constants import DEFAULT_PRICE, ZERO_ADDRESS
from .errors import PreconditionViolation
from .ledger import Chain
from .price import to_fixed
from .swap import SwapRouter

logger = logging.getLogger(__name__)

NETWORKS = ("local", "goerli", "mainnet")

# --- Whitelisted tokens (symbol -> address; None = deploy a fresh mock) ---
WHITELISTED_TOKENS: dict[str, dict[str, str | None]] = {
    "mainnet": {},
    "goerli": {
        "WBTC": "0xC04B0d3107736C32e19F1c62b2aF67BE61d63a05",
        "ETH": ZERO_ADDRESS,
        "DAI": "0x73967c6a0904aA032C103b4104747E88c566B1A2",
        "USDC": "0xD87Ba7A50B2E7E660f678A895E4B72E7CB4CCd9C",
        "USDT": "0x509Ee0d083DdF8AC028f2a56731412edD63223B9",
    },
    "local": {
        "WBTC": None,
        "ETH": ZERO_ADDRESS,
        "DAI": None,
        "USDC": None,
        "USDT": None,
    },
}

# --- Price feed pairs (base, quote) ---
_FEED_PAIRS = [
    ("WBTC", "USDT"),
    ("ETH", "USDT"),
    ("DAI", "USDT"),
    ("USDC", "USDT"),
    ("WBTC", "USDC"),
    ("ETH", "USDC"),
    ("DAI", "USDC"),
]

PRICE_FEED_PAIRS: dict[str, list[tuple[str, str]]] = {
    "mainnet": [],
    "goerli": _FEED_PAIRS,
    "local": _FEED_PAIRS,
}


@dataclass
class Deployment:
    """A deployed router and the addresses of its whitelisted tokens."""

    network: str
    router: SwapRouter
    tokens: dict[str, str] = field(default_factory=dict)

    def address_of(self, symbol: str) -> str:
        try:
            return self.tokens[symbol.upper()]
        except KeyError:
            raise PreconditionViolation(
                "deploy", f"{symbol} is not whitelisted on {self.network}"
            ) from None


def load_prices(path: str | Path) -> dict[tuple[str, str], int]:
    """Read a ``{"BASE/QUOTE": "1.5"}`` JSON price map into fixed point."""
    try:
        raw = json.loads(Path(path).read_text())
    except (OSError, ValueError) as exc:
        raise PreconditionViolation("loadPrices", f"cannot read {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise PreconditionViolation(
            "loadPrices", f"expected a JSON object, got {type(raw).__name__}"
        )
    prices = {}
    for pair, value in raw.items():
        base, sep, quote = pair.partition("/")
        if not sep or not base or not quote:
            raise PreconditionViolation("loadPrices", f"bad pair {pair!r}, expected BASE/QUOTE")
        prices[(base.upper(), quote.upper())] = to_fixed(str(value))
    return prices


def deploy_router(
    chain: Chain,
    owner: str,
    network: str = "local",
    prices: dict[tuple[str, str], int] | None = None,
    new_owner: str | None = None,
) -> Deployment:
    """Deploy a router, whitelist the network's tokens and seed its prices.

    Parameters
    ----------
    chain : Chain
        Ledger to deploy on.
    owner : str
        Deployer; owns the router while it is configured.
    network : str
        One of :data:`NETWORKS`.
    prices : dict, optional
        ``(base symbol, quote symbol) -> fixed-point price``. Defaults to
        1.0 for every feed pair of the network.
    new_owner : str, optional
        If given, ownership is handed over once configuration is done.
    """
    if network not in WHITELISTED_TOKENS:
        raise PreconditionViolation("deploy", f"unknown network {network!r}")

    router = SwapRouter(chain, owner)
    deployment = Deployment(network, router)

    for symbol, address in WHITELISTED_TOKENS[network].items():
        if address is None:
            address = chain.deploy_token(symbol).address
        else:
            address = Web3.to_checksum_address(address)
        if address != ZERO_ADDRESS and chain.token(address) is None:
            chain.add_token(address, symbol)
        deployment.tokens[symbol] = address
        router.register_token(address, sender=owner)

    if prices is None:
        prices = {pair: DEFAULT_PRICE for pair in PRICE_FEED_PAIRS[network]}
    for (base, quote), price in prices.items():
        router.set_price(
            deployment.address_of(base), deployment.address_of(quote), price, sender=owner
        )

    if new_owner is not None:
        router.transfer_ownership(new_owner, sender=owner)

    logger.info(
        "deployed router %s on %s with %d tokens and %d prices",
        router.address, network, len(deployment.tokens), len(prices),
    )
    return deployment
