from __future__ import annotations


class LedgerError(RuntimeError):
    """A rejected ledger operation. The message is the revert reason."""


class InsufficientPayment(LedgerError):
    pass


class FunctionalityPaused(LedgerError):
    pass


class ClaimTooSoon(LedgerError):
    pass


class Unauthorized(LedgerError):
    pass


class InsufficientBalance(LedgerError):
    pass


class RpcError(RuntimeError):
    pass


class StateError(RuntimeError):
    pass
