"""Pure domain layer for the WIP kernel (value objects, sign rule, clock)."""

from wip_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from wip_kernel.domain.transactions import (
    DebtorTransaction,
    TransactionFlag,
    TransactionWindow,
    WipBalance,
    WipCategory,
    WipTransaction,
    classify_subtype,
    signed_amount,
    to_decimal,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "TransactionFlag",
    "WipCategory",
    "WipTransaction",
    "DebtorTransaction",
    "WipBalance",
    "TransactionWindow",
    "classify_subtype",
    "signed_amount",
    "to_decimal",
]
