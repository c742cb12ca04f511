"""
Reference selectors -- scope resolution and the excluded-cost code set.

ScopeSelector resolves task and client identifiers before any scan runs;
callers turn a ``None`` into a not-found error.  EmployeeSelector is the
database-backed Reference Data Port: it resolves the employee codes whose
category (partner categories such as CARL) must contribute zero cost.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import Session

from wip_kernel.logging_config import get_logger
from wip_kernel.models.client import ClientModel, TaskModel
from wip_kernel.models.employee import EmployeeModel
from wip_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.reference")


@dataclass(frozen=True)
class ClientDTO:
    """Resolved client scope."""

    external_id: str
    client_code: str
    name: str
    group_code: str | None


@dataclass(frozen=True)
class TaskDTO:
    """Resolved task scope."""

    external_id: str
    client_external_id: str
    task_code: str
    description: str | None
    service_line_code: str | None


class ScopeSelector(BaseSelector[ClientModel]):
    """Resolves task and client identifiers to DTOs."""

    def get_client(self, client_external_id: str) -> ClientDTO | None:
        row = self.session.execute(
            select(ClientModel).where(ClientModel.external_id == client_external_id)
        ).scalar_one_or_none()
        if row is None:
            return None
        return ClientDTO(
            external_id=row.external_id,
            client_code=row.client_code,
            name=row.name,
            group_code=row.group_code,
        )

    def get_task(self, task_external_id: str) -> TaskDTO | None:
        row = self.session.execute(
            select(TaskModel).where(TaskModel.external_id == task_external_id)
        ).scalar_one_or_none()
        if row is None:
            return None
        return self._task_dto(row)

    def list_tasks_for_client(self, client_external_id: str) -> tuple[TaskDTO, ...]:
        """Every task belonging to the client, ordered by task code."""
        rows = self.session.execute(
            select(TaskModel)
            .where(TaskModel.client_external_id == client_external_id)
            .order_by(TaskModel.task_code, TaskModel.external_id)
        ).scalars().all()
        return tuple(self._task_dto(row) for row in rows)

    def _task_dto(self, row: TaskModel) -> TaskDTO:
        return TaskDTO(
            external_id=row.external_id,
            client_external_id=row.client_external_id,
            task_code=row.task_code,
            description=row.description,
            service_line_code=row.service_line_code,
        )


# ============================================================================
# Reference Data Port
# ============================================================================


@runtime_checkable
class ExcludedCostCodeSource(Protocol):
    """
    Port resolving the employee codes whose cost is excluded.

    Implementations are expected to be cached by the caller; the engine
    treats the returned set as a read-only snapshot for one call.
    """

    def excluded_cost_codes(self) -> frozenset[str]: ...


class EmployeeSelector(BaseSelector[EmployeeModel]):
    """
    Database-backed ExcludedCostCodeSource.

    Contract:
        Returns the codes of every employee whose category_code is one of
        ``categories`` (case-insensitive).
    """

    def __init__(self, session: Session, categories: Iterable[str] = ("CARL",)):
        super().__init__(session)
        self._categories = frozenset(c.strip().upper() for c in categories)

    def excluded_cost_codes(self) -> frozenset[str]:
        if not self._categories:
            return frozenset()
        rows = self.session.execute(
            select(EmployeeModel.employee_code, EmployeeModel.category_code)
            .where(EmployeeModel.category_code.is_not(None))
        ).all()
        codes = frozenset(
            code for code, category in rows
            if category.strip().upper() in self._categories
        )
        logger.debug(
            "excluded_cost_codes_resolved",
            extra={
                "categories": sorted(self._categories),
                "code_count": len(codes),
            },
        )
        return codes
