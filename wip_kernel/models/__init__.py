"""ORM models for the WIP kernel."""

from wip_kernel.models.client import ClientModel, TaskModel
from wip_kernel.models.debtor import DebtorTransactionModel
from wip_kernel.models.employee import EmployeeModel
from wip_kernel.models.wip import WipBalanceModel, WipTransactionModel

__all__ = [
    "ClientModel",
    "TaskModel",
    "EmployeeModel",
    "WipTransactionModel",
    "WipBalanceModel",
    "DebtorTransactionModel",
]
