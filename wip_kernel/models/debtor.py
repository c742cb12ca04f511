"""
Module: wip_kernel.models.debtor
Responsibility: ORM persistence for debtor transactions (invoices and the
    receipts, credits and write-offs posted against them).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only; the engine never writes here.
    - Entries for one invoice share ``invoice_number``; receipts carry
      their own reference but the invoice number they settle.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from wip_kernel.db.base import TimestampedBase


class DebtorTransactionModel(TimestampedBase):
    """A single debtor ledger entry."""

    __tablename__ = "debtor_transactions"

    __table_args__ = (
        Index("idx_debtor_client", "client_external_id"),
        Index("idx_debtor_invoice", "client_external_id", "invoice_number"),
    )

    client_external_id: Mapped[str] = mapped_column(String(64), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    invoice_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    transaction_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    service_line_code: Mapped[str | None] = mapped_column(String(32), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<DebtorTransactionModel client={self.client_external_id} "
            f"invoice={self.invoice_number} total={self.total_amount}>"
        )
