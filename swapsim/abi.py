"""ABI binding for the router: build calldata and dispatch it.

Lets the system under test talk to the simulated router the same way it
would talk to the deployed ``SwapRouterMock`` contract: a 4-byte selector
followed by ABI-encoded arguments, answered with ABI-encoded return data.

Calldata layout (e.g. ``getPrice(address,address)``):
  [0:4]    selector
  [4:36]   address base  (left-padded to 32 bytes)
  [36:68]  address quote (left-padded to 32 bytes)
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from .constants import (
    GET_AMOUNTS_IN_SIG,
    GET_PRICE_SIG,
    IS_TOKEN_REGISTERED_SIG,
    REGISTER_TOKEN_SIG,
    ROUTER_SIGNATURES,
    SET_NATIVE_WRAPPER_SIG,
    SET_PRICE_SIG,
    SWAP_NATIVE_SIG,
    SWAP_TOKEN_SIG,
    TRANSFER_OWNERSHIP_SIG,
    selector,
)
from .errors import PreconditionViolation
from .swap import SwapRouter

logger = logging.getLogger(__name__)


def split_signature(signature: str) -> tuple[str, list[str]]:
    """Split ``name(t1,t2)`` into ``("name", ["t1", "t2"])``."""
    name, _, rest = signature.partition("(")
    args = rest.rstrip(")")
    return name, [t for t in args.split(",") if t]


_BY_SELECTOR = {bytes.fromhex(selector(sig)[2:]): sig for sig in ROUTER_SIGNATURES}


def encode_call(signature: str, *args: Any) -> bytes:
    """Return calldata for calling *signature* with *args*."""
    _, types = split_signature(signature)
    return bytes.fromhex(selector(signature)[2:]) + encode(types, list(args))


def decode_call(calldata: bytes) -> tuple[str, tuple]:
    """Decode router calldata into ``(function name, arguments)``.

    Raises
    ------
    PreconditionViolation
        If the selector is unknown or the arguments do not decode.
    """
    if len(calldata) < 4:
        raise PreconditionViolation(
            "call", f"calldata too short ({len(calldata)} bytes, need >= 4)"
        )
    signature = _BY_SELECTOR.get(bytes(calldata[:4]))
    if signature is None:
        raise PreconditionViolation("call", f"unknown selector 0x{bytes(calldata[:4]).hex()}")
    name, types = split_signature(signature)
    try:
        args = decode(types, bytes(calldata[4:]))
    except DecodingError as exc:
        raise PreconditionViolation(name, f"malformed arguments: {exc}") from exc
    return name, args


class RouterCallHandler:
    """Execute ABI-encoded calls against a :class:`SwapRouter`."""

    def __init__(self, router: SwapRouter) -> None:
        self.router = router
        self._handlers: dict[str, Callable[..., bytes]] = {
            split_signature(SET_PRICE_SIG)[0]: self._set_price,
            split_signature(REGISTER_TOKEN_SIG)[0]: self._register_token,
            split_signature(SET_NATIVE_WRAPPER_SIG)[0]: self._set_native_wrapper,
            split_signature(TRANSFER_OWNERSHIP_SIG)[0]: self._transfer_ownership,
            split_signature(SWAP_NATIVE_SIG)[0]: self._swap_native,
            split_signature(SWAP_TOKEN_SIG)[0]: self._swap_token,
            split_signature(GET_PRICE_SIG)[0]: self._get_price,
            split_signature(IS_TOKEN_REGISTERED_SIG)[0]: self._is_token_registered,
            split_signature(GET_AMOUNTS_IN_SIG)[0]: self._get_amounts_in,
        }

    def call(self, calldata: bytes, *, sender: str, value: int = 0) -> bytes:
        """Dispatch *calldata* from *sender* with *value* wei attached.

        Returns the ABI-encoded return data.
        """
        name, args = decode_call(calldata)
        if value and name != split_signature(SWAP_NATIVE_SIG)[0]:
            raise PreconditionViolation(name, "function is not payable")
        logger.debug("call %s%r from %s", name, args, sender)
        return self._handlers[name](args, sender=sender, value=value)

    # -- handlers -------------------------------------------------------------

    def _set_price(self, args: tuple, *, sender: str, value: int) -> bytes:
        base, quote, price = args
        self.router.set_price(base, quote, price, sender=sender)
        return b""

    def _register_token(self, args: tuple, *, sender: str, value: int) -> bytes:
        (currency,) = args
        self.router.register_token(currency, sender=sender)
        return b""

    def _set_native_wrapper(self, args: tuple, *, sender: str, value: int) -> bytes:
        (handle,) = args
        self.router.set_native_wrapper(handle, sender=sender)
        return b""

    def _transfer_ownership(self, args: tuple, *, sender: str, value: int) -> bytes:
        (new_owner,) = args
        self.router.transfer_ownership(new_owner, sender=sender)
        return b""

    def _swap_native(self, args: tuple, *, sender: str, value: int) -> bytes:
        amount_out, path, recipient, deadline = args
        result = self.router.swap_native_for_exact_output(
            amount_out, list(path), recipient,
            sender=sender, value=value, deadline=deadline,
        )
        return encode(["uint256[]"], [list(result)])

    def _swap_token(self, args: tuple, *, sender: str, value: int) -> bytes:
        amount_out, amount_in_max, path, recipient, deadline = args
        result = self.router.swap_token_for_exact_output(
            amount_out, amount_in_max, list(path), recipient,
            sender=sender, deadline=deadline,
        )
        return encode(["uint256[]"], [list(result)])

    def _get_price(self, args: tuple, *, sender: str, value: int) -> bytes:
        base, quote = args
        return encode(["uint256"], [self.router.get_price(base, quote)])

    def _is_token_registered(self, args: tuple, *, sender: str, value: int) -> bytes:
        (currency,) = args
        return encode(["bool"], [self.router.is_token_registered(currency)])

    def _get_amounts_in(self, args: tuple, *, sender: str, value: int) -> bytes:
        amount_out, path = args
        return encode(["uint256[]"], [self.router.get_amounts_in(amount_out, list(path))])
