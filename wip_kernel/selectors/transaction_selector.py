"""
Transaction selectors -- bounded, read-only scans of the transaction store.

Provides the Transaction Fetcher used by every WIP and balance view:
WIP transactions scoped to a task or a client, debtor transactions
scoped to a client, and the pre-aggregated task balance feed.

Key design decisions:
- Returns TransactionWindow DTOs, not ORM models
- Uses the caller's Session; never commits, flushes or retries
- Every scan is capped.  The selector reads ``limit + 1`` rows so it can
  tell "exactly at the cap" apart from "more rows exist"; the extra row is
  dropped and ``limit_reached`` is set.  A capped scan is logged at
  WARNING so the truncation is never silent.
- Client scope is the union of rows carrying the client id and rows
  carrying any task id that belongs to the client, since some entries
  only carry the task id.
"""

from collections.abc import Iterable

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from wip_kernel.domain.transactions import (
    DebtorTransaction,
    TransactionFlag,
    TransactionWindow,
    WipBalance,
    WipTransaction,
)
from wip_kernel.logging_config import get_logger
from wip_kernel.models.client import TaskModel
from wip_kernel.models.debtor import DebtorTransactionModel
from wip_kernel.models.wip import WipBalanceModel, WipTransactionModel
from wip_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.transactions")

DEFAULT_TRANSACTION_LIMIT = 50_000


def _check_limit(limit: int) -> None:
    if not isinstance(limit, int) or isinstance(limit, bool) or limit <= 0:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")


def _log_if_capped(window: TransactionWindow, scope: str, scope_id: str, source: str) -> None:
    if window.limit_reached:
        logger.warning(
            "transaction_limit_reached",
            extra={
                "scope": scope,
                "scope_id": scope_id,
                "source": source,
                "limit": window.limit,
                "detail": "Some transaction data may be excluded",
            },
        )


class WipTransactionSelector(BaseSelector[WipTransactionModel]):
    """
    Selector for WIP transactions and the task balance feed.

    Returns DTOs rather than ORM models for clean separation.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def _to_dto(self, row: WipTransactionModel) -> WipTransaction:
        return WipTransaction(
            task_external_id=row.task_external_id,
            client_external_id=row.client_external_id,
            transaction_date=row.transaction_date,
            transaction_subtype=row.transaction_subtype,
            flag=TransactionFlag.from_code(row.transaction_type_code),
            employee_code=row.employee_code,
            amount=row.amount,
            cost=row.cost,
            hours=row.hours,
            service_line_code=row.service_line_code,
            updated_at=row.updated_at,
        )

    def _fetch(self, where_clause, limit: int) -> TransactionWindow:
        rows = self.session.execute(
            select(WipTransactionModel)
            .where(where_clause)
            .order_by(
                WipTransactionModel.transaction_date,
                WipTransactionModel.id,
            )
            .limit(limit + 1)
        ).scalars().all()
        return TransactionWindow.from_rows([self._to_dto(r) for r in rows], limit)

    def fetch_for_task(
        self,
        task_external_id: str,
        limit: int = DEFAULT_TRANSACTION_LIMIT,
    ) -> TransactionWindow:
        """
        Fetch WIP transactions booked against one task.

        Args:
            task_external_id: Task identifier.
            limit: Hard row cap.

        Returns:
            TransactionWindow of WipTransaction records.
        """
        _check_limit(limit)
        window = self._fetch(
            WipTransactionModel.task_external_id == task_external_id,
            limit,
        )
        _log_if_capped(window, "task", task_external_id, "wip_transactions")
        return window

    def fetch_for_client(
        self,
        client_external_id: str,
        limit: int = DEFAULT_TRANSACTION_LIMIT,
    ) -> TransactionWindow:
        """
        Fetch WIP transactions for a client across both join paths.

        Matches rows carrying the client id OR any task id belonging to
        the client.

        Args:
            client_external_id: Client identifier.
            limit: Hard row cap.

        Returns:
            TransactionWindow of WipTransaction records.
        """
        _check_limit(limit)
        client_task_ids = (
            select(TaskModel.external_id)
            .where(TaskModel.client_external_id == client_external_id)
            .scalar_subquery()
        )
        window = self._fetch(
            or_(
                WipTransactionModel.client_external_id == client_external_id,
                WipTransactionModel.task_external_id.in_(client_task_ids),
            ),
            limit,
        )
        _log_if_capped(window, "client", client_external_id, "wip_transactions")
        return window

    def fetch_task_balance(self, task_external_id: str) -> WipBalance | None:
        """
        Get the pre-aggregated balance row for a task.

        Returns:
            WipBalance if the feed has a row for the task, None otherwise.
        """
        row = self.session.execute(
            select(WipBalanceModel).where(
                WipBalanceModel.task_external_id == task_external_id
            )
        ).scalar_one_or_none()

        if row is None:
            return None

        return self._balance_dto(row)

    def fetch_task_balances(
        self, task_external_ids: Iterable[str]
    ) -> dict[str, WipBalance]:
        """
        Get the pre-aggregated balance rows for several tasks.

        Returns:
            Task id -> WipBalance, for the tasks that have a feed row.
        """
        ids = sorted(set(task_external_ids))
        if not ids:
            return {}
        rows = self.session.execute(
            select(WipBalanceModel).where(WipBalanceModel.task_external_id.in_(ids))
        ).scalars().all()
        return {row.task_external_id: self._balance_dto(row) for row in rows}

    def _balance_dto(self, row: WipBalanceModel) -> WipBalance:
        return WipBalance(
            task_external_id=row.task_external_id,
            bal_wip=row.bal_wip,
            bal_time=row.bal_time,
            bal_disb=row.bal_disb,
            wip_provision=row.wip_provision,
        )


class DebtorTransactionSelector(BaseSelector[DebtorTransactionModel]):
    """Selector for debtor (invoiced) transactions."""

    def __init__(self, session: Session):
        super().__init__(session)

    def fetch_for_client(
        self,
        client_external_id: str,
        limit: int = DEFAULT_TRANSACTION_LIMIT,
    ) -> TransactionWindow:
        """
        Fetch debtor transactions for one client.

        Returns:
            TransactionWindow of DebtorTransaction records.
        """
        _check_limit(limit)
        rows = self.session.execute(
            select(DebtorTransactionModel)
            .where(DebtorTransactionModel.client_external_id == client_external_id)
            .order_by(DebtorTransactionModel.created_at, DebtorTransactionModel.id)
            .limit(limit + 1)
        ).scalars().all()

        window = TransactionWindow.from_rows(
            [
                DebtorTransaction(
                    client_external_id=r.client_external_id,
                    total_amount=r.total_amount,
                    updated_at=r.updated_at,
                    invoice_number=r.invoice_number,
                    transaction_date=r.transaction_date,
                    service_line_code=r.service_line_code,
                )
                for r in rows
            ],
            limit,
        )
        _log_if_capped(window, "client", client_external_id, "debtor_transactions")
        return window
