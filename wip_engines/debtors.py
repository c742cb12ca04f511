"""
Module: wip_engines.debtors
Responsibility:
    Turn a client's raw debtor ledger into recoverability figures: net
    balance per invoice, aging of the outstanding balances, weighted
    average payment days, and the same figures per master service line.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import wip_kernel.domain, wip_kernel.logging_config and
    sibling engines.

Invariants enforced:
    - Purity: no clock access.  The as-of date is a parameter.
    - Invoice netting is by invoice number only.  Receipt references are
      never matched against invoice numbers.
    - Only invoices with a positive net balance are aged; every such
      invoice lands in exactly one bucket.
    - Decimal-only arithmetic; average payment days are exact ratios.

Failure modes:
    - ValueError from AgeBucket on a malformed bucket definition.

Usage:
    from wip_engines.debtors import aggregate_debtors

    metrics = aggregate_debtors(window.records, as_of=date(2024, 6, 30))
    metrics.aging["31-60"]
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from types import MappingProxyType

from wip_kernel.domain.transactions import DebtorTransaction
from wip_kernel.logging_config import get_logger
from wip_engines.aggregator import master_service_line
from wip_engines.profitability import safe_ratio
from wip_engines.tracer import traced_engine

logger = get_logger("engines.debtors")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class AgeBucket:
    """A contiguous range of days outstanding; ``max_days=None`` is open-ended."""

    name: str
    min_days: int
    max_days: int | None

    def __post_init__(self) -> None:
        if self.min_days < 0:
            raise ValueError("min_days cannot be negative")
        if self.max_days is not None and self.max_days < self.min_days:
            raise ValueError("max_days cannot be less than min_days")

    def contains(self, age_days: int) -> bool:
        if age_days < self.min_days:
            return False
        return self.max_days is None or age_days <= self.max_days


DEBTOR_AGING_BUCKETS: tuple[AgeBucket, ...] = (
    AgeBucket("0-30", 0, 30),
    AgeBucket("31-60", 31, 60),
    AgeBucket("61-90", 61, 90),
    AgeBucket("91-120", 91, 120),
    AgeBucket("120+", 121, None),
)


def classify_age(
    age_days: int,
    buckets: Sequence[AgeBucket] = DEBTOR_AGING_BUCKETS,
) -> AgeBucket:
    """
    Bucket for an age in days.

    Negative ages (invoice dated after the as-of date) count as current.
    """
    if age_days < 0:
        return buckets[0]
    for bucket in buckets:
        if bucket.contains(age_days):
            return bucket
    raise ValueError(f"Age {age_days} does not fit any bucket")


@dataclass(frozen=True)
class InvoiceBalance:
    """
    Net position of one invoice after receipts, credits and write-offs.

    Guarantees:
        - net_balance >= 0.
        - payments_total == invoice_amount - net_balance.
        - invoice_date is the earliest dated positive entry, or None when
          no positive entry carries a date.
    """

    invoice_number: str
    invoice_amount: Decimal
    payments_total: Decimal
    net_balance: Decimal
    invoice_date: date | None
    last_activity: date | None
    service_line_code: str | None

    @property
    def is_settled(self) -> bool:
        return self.net_balance == _ZERO


@dataclass(frozen=True)
class DebtorMetrics:
    """
    Recoverability figures for a set of debtor transactions.

    ``aging`` maps every bucket name to its outstanding amount (zero when
    empty).  ``avg_payment_days_paid`` is None when no invoice has been
    settled.
    """

    total_balance: Decimal
    aging: Mapping[str, Decimal]
    avg_payment_days_paid: Decimal | None
    avg_payment_days_outstanding: Decimal
    transaction_count: int
    invoice_count: int


def _min_date(current: date | None, candidate: date | None) -> date | None:
    if candidate is None:
        return current
    return candidate if current is None or candidate < current else current


def _max_date(current: date | None, candidate: date | None) -> date | None:
    if candidate is None:
        return current
    return candidate if current is None or candidate > current else current


def match_invoices(
    transactions: Iterable[DebtorTransaction],
) -> dict[str, InvoiceBalance]:
    """
    Net the debtor ledger by invoice number.

    Positive entries are invoice amounts, negative entries are receipts,
    credits or write-offs.  Entries without an invoice number are ignored.
    Invoices whose net is negative (standalone credits) are dropped, as is
    any invoice whose net is exactly cancelled by another invoice number's
    net (a write-off posted under its own number), together with that
    write-off.  Settled invoices are kept for the payment-days figures.

    Returns:
        Invoice number -> InvoiceBalance, in first-seen order.
    """
    nets: dict[str, Decimal] = {}
    invoiced: dict[str, Decimal] = {}
    first_dates: dict[str, date | None] = {}
    last_dates: dict[str, date | None] = {}
    service_lines: dict[str, str | None] = {}

    for txn in transactions:
        number = txn.invoice_number
        if not number:
            continue
        amount = txn.total_amount
        if number not in nets:
            nets[number] = _ZERO
            invoiced[number] = _ZERO
            first_dates[number] = None
            last_dates[number] = None
            service_lines[number] = txn.service_line_code
        nets[number] += amount
        if amount > _ZERO:
            invoiced[number] += amount
            first_dates[number] = _min_date(first_dates[number], txn.transaction_date)
        last_dates[number] = _max_date(last_dates[number], txn.transaction_date)

    by_net: dict[Decimal, list[str]] = {}
    for number, net in nets.items():
        by_net.setdefault(net, []).append(number)
    written_off: set[str] = set()
    for net, numbers in by_net.items():
        if net != _ZERO and -net in by_net:
            written_off.update(numbers)
            written_off.update(by_net[-net])

    invoices: dict[str, InvoiceBalance] = {}
    for number, net in nets.items():
        if net < _ZERO or number in written_off:
            continue
        invoices[number] = InvoiceBalance(
            invoice_number=number,
            invoice_amount=invoiced[number],
            payments_total=invoiced[number] - net,
            net_balance=net,
            invoice_date=first_dates[number],
            last_activity=last_dates[number],
            service_line_code=service_lines[number],
        )

    logger.debug(
        "debtor_invoices_matched",
        extra={
            "invoice_numbers_seen": len(nets),
            "invoice_count": len(invoices),
            "written_off_count": len(written_off),
        },
    )
    return invoices


def calculate_aging(
    invoices: Iterable[InvoiceBalance],
    as_of: date,
    buckets: Sequence[AgeBucket] = DEBTOR_AGING_BUCKETS,
) -> dict[str, Decimal]:
    """Outstanding balance per bucket, aged from each invoice's date."""
    aging = {bucket.name: _ZERO for bucket in buckets}
    for invoice in invoices:
        if invoice.net_balance <= _ZERO:
            continue
        # Undated invoices are treated as raised on the as-of date.
        invoice_date = invoice.invoice_date or as_of
        bucket = classify_age((as_of - invoice_date).days, buckets)
        aging[bucket.name] += invoice.net_balance
    return aging


def calculate_payment_days(
    invoices: Iterable[InvoiceBalance],
    as_of: date,
) -> tuple[Decimal | None, Decimal]:
    """
    Weighted average payment days.

    Settled invoices contribute the days from invoice date to their last
    entry, weighted by the invoiced amount.  Open invoices contribute the
    days from invoice date to ``as_of``, weighted by the open balance.
    Invoices without a dated positive entry are skipped.

    Returns:
        (average days to pay or None, average days outstanding or zero).
    """
    paid_days = paid_weight = _ZERO
    open_days = open_weight = _ZERO

    for invoice in invoices:
        if invoice.invoice_date is None:
            continue
        if invoice.is_settled:
            settled_on = invoice.last_activity or invoice.invoice_date
            paid_days += (settled_on - invoice.invoice_date).days * invoice.invoice_amount
            paid_weight += invoice.invoice_amount
        elif invoice.net_balance > _ZERO:
            open_days += (as_of - invoice.invoice_date).days * invoice.net_balance
            open_weight += invoice.net_balance

    avg_paid = paid_days / paid_weight if paid_weight > _ZERO else None
    return avg_paid, safe_ratio(open_days, open_weight)


def _debtor_metrics(
    invoices: Sequence[InvoiceBalance],
    transaction_count: int,
    as_of: date,
) -> DebtorMetrics:
    avg_paid, avg_outstanding = calculate_payment_days(invoices, as_of)
    return DebtorMetrics(
        total_balance=sum((i.net_balance for i in invoices), _ZERO),
        aging=MappingProxyType(calculate_aging(invoices, as_of)),
        avg_payment_days_paid=avg_paid,
        avg_payment_days_outstanding=avg_outstanding,
        transaction_count=transaction_count,
        invoice_count=len(invoices),
    )


@traced_engine("debtor_aggregation", "1.0", fingerprint_fields=("as_of",))
def aggregate_debtors(
    transactions: Sequence[DebtorTransaction],
    as_of: date,
) -> DebtorMetrics:
    """
    Overall recoverability figures for a client's debtor ledger.

    ``transaction_count`` counts every entry, including those without an
    invoice number.
    """
    invoices = match_invoices(transactions)
    return _debtor_metrics(list(invoices.values()), len(transactions), as_of)


@traced_engine("debtor_aggregation", "1.0", fingerprint_fields=("service_line_map", "as_of"))
def aggregate_debtors_by_service_line(
    transactions: Sequence[DebtorTransaction],
    service_line_map: Mapping[str, str],
    as_of: date,
) -> dict[str, DebtorMetrics]:
    """
    Recoverability figures per master service line.

    An invoice belongs to the master line of the service line on its first
    entry; transaction counts follow each entry's own service line.  Only
    master lines holding at least one invoice are returned.
    """
    invoices = match_invoices(transactions)

    invoices_by_line: dict[str, list[InvoiceBalance]] = {}
    for invoice in invoices.values():
        master = master_service_line(invoice.service_line_code, service_line_map)
        invoices_by_line.setdefault(master, []).append(invoice)

    counts_by_line: dict[str, int] = {}
    for txn in transactions:
        master = master_service_line(txn.service_line_code, service_line_map)
        counts_by_line[master] = counts_by_line.get(master, 0) + 1

    return {
        master: _debtor_metrics(line_invoices, counts_by_line.get(master, 0), as_of)
        for master, line_invoices in sorted(invoices_by_line.items())
    }
