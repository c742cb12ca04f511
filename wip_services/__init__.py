"""
wip_services -- orchestration of selectors, engines, config and cache.

Responsibility:
    Turns a task or client id into a JSON-ready payload.  Every service
    resolves scope first, fetches under the configured row cap, runs the
    pure engines and reports completeness alongside the figures.

Architecture position:
    Services -- the outermost layer.  Depends on wip_kernel, wip_engines
    and wip_config; nothing in those packages imports from here.
"""

from wip_services.cache import (
    CachePort,
    InMemoryCache,
    client_balance_key,
    client_debtors_key,
    client_wip_key,
    task_wip_key,
)
from wip_services.client_balance_service import (
    ClientBalanceService,
    ClientDebtorService,
    ClientWipService,
)
from wip_services.task_wip_service import TaskWipService

__all__ = [
    "CachePort",
    "InMemoryCache",
    "task_wip_key",
    "client_balance_key",
    "client_wip_key",
    "client_debtors_key",
    "TaskWipService",
    "ClientBalanceService",
    "ClientWipService",
    "ClientDebtorService",
]
