#!/usr/bin/env python3
"""SwapSim demo — buy an exact amount of a token with native currency.

Run:
    python -m swapsim.main --price 2.0 --amount 100 --value 60 [--output USDC]

Deploys a router on a fresh in-process chain, seeds its prices, and runs
one native-for-exact-output swap, printing the quote, the realized amounts
and the refund.
"""

import argparse
import logging
import os
import sys

from .deployment import NETWORKS, deploy_router, load_prices
from .errors import SwapError
from .ledger import Chain
from .price import from_fixed, to_fixed

DEFAULT_NETWORK = os.environ.get("SWAPSIM_NETWORK", "local")
DEFAULT_OUTPUT = "USDC"
FUND_WEI = 10**24


def run(
    price: str,
    amount: int,
    value: int,
    output: str = DEFAULT_OUTPUT,
    network: str = DEFAULT_NETWORK,
    prices_file: str | None = None,
) -> bool:
    print(f"=== SwapSim ({network}) ===")
    chain = Chain()
    admin, buyer = chain.accounts[0], chain.accounts[1]

    try:
        prices = load_prices(prices_file) if prices_file else None
        deployment = deploy_router(chain, admin, network, prices=prices)
        router = deployment.router
        native = router.native_wrapper
        out_token = deployment.address_of(output)

        router.set_price(native, out_token, to_fixed(price), sender=admin)
        chain.fund_eth(buyer, FUND_WEI)

        # ---- 1. Quote ----
        path = [native, out_token]
        quote = router.get_price(native, out_token)
        required, _ = router.get_amounts_in(amount, path)
        print(f"\n[1] Price native/{output} : {from_fixed(quote)}")
        print(f"    Required payment   : {required} wei for {amount} {output}")

        # ---- 2. Swap ----
        balance_before = chain.native_balance(buyer)
        paid, received = router.swap_native_for_exact_output(
            amount, path, buyer, sender=buyer, value=value,
        )
        refund = value - (balance_before - chain.native_balance(buyer))
        print(f"\n[2] Swap with {value} wei attached")
        print(f"    Paid     : {paid} wei")
        print(f"    Received : {received} {output}")
        print(f"    Refunded : {refund} wei")
        print(f"    {output} balance: {chain.token(out_token).balance_of(buyer)}")

    except SwapError as exc:
        print(f"\nSWAP REVERTED — {exc}", file=sys.stderr)
        return False

    print("\n=== Verdict: OK ===")
    return True


def main() -> None:
    parser = argparse.ArgumentParser(description="SwapSim exact-output swap demo")
    parser.add_argument("--price", default="1", help="Native/output price, e.g. 2.5")
    parser.add_argument("--amount", type=int, required=True, help="Exact output amount (raw units)")
    parser.add_argument("--value", type=int, required=True, help="Native value attached (wei)")
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help="Output token symbol")
    parser.add_argument("--network", default=DEFAULT_NETWORK, choices=NETWORKS)
    parser.add_argument("--prices", help="JSON price map {\"BASE/QUOTE\": \"1.5\"}")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    success = run(args.price, args.amount, args.value, args.output, args.network, args.prices)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
