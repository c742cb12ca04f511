"""Selectors for the WIP kernel (read side)."""

from wip_kernel.selectors.reference_selector import (
    ClientDTO,
    EmployeeSelector,
    ExcludedCostCodeSource,
    ScopeSelector,
    TaskDTO,
)
from wip_kernel.selectors.transaction_selector import (
    DEFAULT_TRANSACTION_LIMIT,
    DebtorTransactionSelector,
    WipTransactionSelector,
)

__all__ = [
    "WipTransactionSelector",
    "DebtorTransactionSelector",
    "DEFAULT_TRANSACTION_LIMIT",
    "ScopeSelector",
    "ClientDTO",
    "TaskDTO",
    "EmployeeSelector",
    "ExcludedCostCodeSource",
]
