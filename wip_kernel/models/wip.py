"""
Module: wip_kernel.models.wip
Responsibility: ORM persistence for WIP ledger entries and the
    pre-aggregated per-task WIP balance feed.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - WIP transactions are append-only.  Corrections arrive as new rows
      (typically flagged as reversals); the engine never writes here.
    - A row may carry a task id, a client id, or both.  Client-scoped
      reads must union both join paths.

Failure modes:
    (read-only from the engine; none)
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from wip_kernel.db.base import TimestampedBase


class WipTransactionModel(TimestampedBase):
    """A single WIP ledger entry."""

    __tablename__ = "wip_transactions"

    __table_args__ = (
        Index("idx_wip_task_date", "task_external_id", "transaction_date"),
        Index("idx_wip_client_date", "client_external_id", "transaction_date"),
    )

    task_external_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    client_external_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    transaction_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    # Free-form classification (T, D, ADJ, F, P, ...)
    transaction_subtype: Mapped[str] = mapped_column(String(16), nullable=False)
    # Sign-handling code: F = reversal, P = provision, anything else = normal
    transaction_type_code: Mapped[str | None] = mapped_column(String(8), nullable=True)
    employee_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    cost: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    hours: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    service_line_code: Mapped[str | None] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<WipTransactionModel {self.transaction_subtype}/{self.transaction_type_code} "
            f"task={self.task_external_id} amount={self.amount}>"
        )


class WipBalanceModel(TimestampedBase):
    """Pre-aggregated WIP balance for one task."""

    __tablename__ = "wip_balances"

    task_external_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    bal_wip: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    bal_time: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    bal_disb: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    wip_provision: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    def __repr__(self) -> str:
        return f"<WipBalanceModel task={self.task_external_id} bal_wip={self.bal_wip}>"
