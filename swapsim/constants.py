"""Fixed-point constants, sentinel addresses and router call signatures."""

from web3 import Web3


# --- Fixed point ---
SCALE = 10**18
SCALE_PRODUCT = SCALE * SCALE
DEFAULT_PRICE = SCALE  # 1.0
UINT256_MAX = 2**256 - 1

# --- Sentinels ---
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


# ---------------------------------------------------------------------------
# Router call signatures
# ---------------------------------------------------------------------------

SET_PRICE_SIG = "setPrice(address,address,uint256)"
REGISTER_TOKEN_SIG = "registerToken(address)"
SET_NATIVE_WRAPPER_SIG = "setNativeWrapper(address)"
TRANSFER_OWNERSHIP_SIG = "transferOwnership(address)"
SWAP_NATIVE_SIG = "swapETHForExactTokens(uint256,address[],address,uint256)"
SWAP_TOKEN_SIG = "swapTokensForExactTokens(uint256,uint256,address[],address,uint256)"
GET_PRICE_SIG = "getPrice(address,address)"
IS_TOKEN_REGISTERED_SIG = "isTokenRegistered(address)"
GET_AMOUNTS_IN_SIG = "getAmountsIn(uint256,address[])"

ROUTER_SIGNATURES = (
    SET_PRICE_SIG,
    REGISTER_TOKEN_SIG,
    SET_NATIVE_WRAPPER_SIG,
    TRANSFER_OWNERSHIP_SIG,
    SWAP_NATIVE_SIG,
    SWAP_TOKEN_SIG,
    GET_PRICE_SIG,
    IS_TOKEN_REGISTERED_SIG,
    GET_AMOUNTS_IN_SIG,
)


def selector(signature: str) -> str:
    """Return the 0x-prefixed 4-byte selector of *signature*."""
    return "0x" + Web3.keccak(text=signature)[:4].hex().removeprefix("0x")


SET_PRICE_SELECTOR = selector(SET_PRICE_SIG)
SWAP_NATIVE_SELECTOR = selector(SWAP_NATIVE_SIG)
SWAP_TOKEN_SELECTOR = selector(SWAP_TOKEN_SIG)
