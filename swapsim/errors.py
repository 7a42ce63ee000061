"""Errors raised by the swap simulator.

Every failure aborts the whole operation: the chain state is rolled back
before the exception reaches the caller.
"""


class SwapError(Exception):
    """Base class for router and ledger failures."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"{operation}: {reason}")


class PreconditionViolation(SwapError):
    """Malformed path, unregistered output currency, or invalid argument."""


class Unauthorized(PreconditionViolation):
    """An admin operation was called by an address other than the owner."""


class BudgetExceeded(SwapError):
    """The supplied value or maximum input is below the required payment."""

    def __init__(self, operation: str, required: int, supplied: int):
        self.required = required
        self.supplied = supplied
        super().__init__(
            operation,
            f"required payment {required} exceeds supplied {supplied}",
        )


class TransferFailure(SwapError):
    """A token debit, native transfer or mint could not be performed."""
