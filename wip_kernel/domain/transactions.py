"""
Transactions -- Immutable WIP and debtor transaction value objects.

Responsibility:
    Defines the in-memory shape of the two append-only record kinds the
    engine reads (WIP transactions and debtor transactions), the
    pre-aggregated task balance feed, the bounded fetch window, and the
    single sign rule shared by every calculation that sums amounts.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by selectors (which build these objects from ORM rows),
    by engines (which reduce them) and by services.

Invariants enforced:
    - Decimal-only arithmetic: amount, cost, hours and total_amount are
      always ``Decimal``; other numerics are coerced with
      ``Decimal(str(value))`` at construction.
    - Immutability: records are frozen; corrections arrive as new records
      and cost normalization returns a copy (``with_cost``).
    - Sign rule: ``REVERSAL`` contributions are subtracted, ``PROVISION``
      contributions are never reversed, ``NORMAL`` contributions are added.
      ``signed_amount`` is the only place this rule is written down.

Failure modes:
    - ValueError on construction with an unconvertible or non-finite
      numeric value.
    - ValueError on a TransactionWindow whose count disagrees with its
      records or whose limit is not positive.

Audit relevance:
    Task-level and client-level WIP views must agree on how a reversal
    or provision moves a balance.  Routing both through ``signed_amount``
    keeps the two call sites from drifting apart.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

_ZERO = Decimal("0")


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """
    Coerce a numeric value to Decimal; ``None`` becomes zero.

    NaN and infinities are rejected so they can never reach a total.
    """
    if value is None:
        return _ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid {field_name}: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Invalid {field_name}: {value!r} is not finite")
    return result


class TransactionFlag(str, Enum):
    """
    Sign-handling flag carried by every WIP transaction.

    The store encodes it as a short code: ``F`` for reversal entries and
    ``P`` for provisions; any other code is a normal entry.
    """

    NORMAL = "N"
    REVERSAL = "F"
    PROVISION = "P"

    @classmethod
    def from_code(cls, code: str | None) -> TransactionFlag:
        """Map a raw store code onto a flag (case-insensitive)."""
        normalized = (code or "").strip().upper()
        if normalized in ("F", "FEE"):
            return cls.REVERSAL
        if normalized in ("P", "PRO"):
            return cls.PROVISION
        return cls.NORMAL


class WipCategory(str, Enum):
    """Life-to-date bucket a transaction subtype accumulates into."""

    TIME = "TIME"
    DISBURSEMENT = "DISBURSEMENT"
    ADJUSTMENT = "ADJUSTMENT"
    FEE = "FEE"


_DISBURSEMENT_ADJUSTMENT_CODES = frozenset({"AD", "ADD"})
_ADJUSTMENT_CODES = frozenset({"ADJ", "AT", "ADT"}) | _DISBURSEMENT_ADJUSTMENT_CODES
_FEE_CODES = frozenset({"F", "FEE"})


def classify_subtype(subtype: str | None) -> WipCategory:
    """
    Classify a free-form transaction subtype into exactly one bucket.

    Adjustment and fee codes are checked before the time/disbursement
    prefixes so that ``ADT`` is an adjustment rather than time and
    ``FEE`` never falls through to a prefix match.  Anything that matches
    no rule is treated as time.
    """
    code = (subtype or "").strip().upper()
    if code in _ADJUSTMENT_CODES or code.startswith("ADJ"):
        return WipCategory.ADJUSTMENT
    if code in _FEE_CODES or code.startswith("FEE"):
        return WipCategory.FEE
    if code.startswith("T"):
        return WipCategory.TIME
    if code.startswith("D"):
        return WipCategory.DISBURSEMENT
    return WipCategory.TIME


def is_disbursement_side(subtype: str | None) -> bool:
    """
    True for disbursements and for adjustments raised against them
    (``AD``/``ADD``).  Everything else sits on the time side of a balance.
    """
    code = (subtype or "").strip().upper()
    if code in _DISBURSEMENT_ADJUSTMENT_CODES:
        return True
    return classify_subtype(code) is WipCategory.DISBURSEMENT


def signed_amount(value: Decimal, flag: TransactionFlag) -> Decimal:
    """
    Apply the transaction sign rule to a raw contribution.

    Provisions are contra entries but are deliberately never reversed.
    """
    match flag:
        case TransactionFlag.REVERSAL:
            return -value
        case TransactionFlag.PROVISION:
            return value
        case TransactionFlag.NORMAL:
            return value
        case _:
            raise ValueError(f"Unknown transaction flag: {flag}")


@dataclass(frozen=True)
class WipTransaction:
    """
    One WIP ledger entry (time, disbursement, adjustment or fee).

    Contract:
        Frozen value object.  A record may carry a task id, a client id,
        or both.
    Guarantees:
        - amount, cost and hours are Decimal.
        - flag is always a TransactionFlag.
    Non-goals:
        - Does not validate that task and client ids belong together.
    """

    task_external_id: str | None
    client_external_id: str | None
    transaction_date: date | None
    transaction_subtype: str
    flag: TransactionFlag = TransactionFlag.NORMAL
    employee_code: str | None = None
    amount: Decimal = _ZERO
    cost: Decimal = _ZERO
    hours: Decimal = _ZERO
    service_line_code: str | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        for attr in ("amount", "cost", "hours"):
            object.__setattr__(self, attr, to_decimal(getattr(self, attr), attr))
        if not isinstance(self.flag, TransactionFlag):
            object.__setattr__(self, "flag", TransactionFlag.from_code(self.flag))

    @property
    def category(self) -> WipCategory:
        return classify_subtype(self.transaction_subtype)

    @property
    def signed_amount(self) -> Decimal:
        """Amount with the sign rule applied."""
        return signed_amount(self.amount, self.flag)

    def with_cost(self, cost: Decimal) -> WipTransaction:
        """Return a copy with a replaced cost."""
        return replace(self, cost=cost)


@dataclass(frozen=True)
class DebtorTransaction:
    """
    One debtor ledger entry: an invoice (positive total) or a receipt,
    credit or write-off against one (negative total).

    Entries belonging to the same invoice share ``invoice_number``.
    """

    client_external_id: str
    total_amount: Decimal = _ZERO
    updated_at: datetime | None = None
    invoice_number: str | None = None
    transaction_date: date | None = None
    service_line_code: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "total_amount", to_decimal(self.total_amount, "total_amount")
        )


@dataclass(frozen=True)
class WipBalance:
    """
    Pre-aggregated balance row for a task.

    Task-level balance fields come from this feed rather than from the
    raw transaction scan.
    """

    task_external_id: str
    bal_wip: Decimal = _ZERO
    bal_time: Decimal = _ZERO
    bal_disb: Decimal = _ZERO
    wip_provision: Decimal = _ZERO

    def __post_init__(self) -> None:
        for attr in ("bal_wip", "bal_time", "bal_disb", "wip_provision"):
            object.__setattr__(self, attr, to_decimal(getattr(self, attr), attr))


@dataclass(frozen=True)
class TransactionWindow:
    """
    Result of one bounded transaction fetch.

    Contract:
        ``records`` holds at most ``limit`` entries.  ``limit_reached`` is
        True when the store held more rows than the cap; totals computed
        from ``records`` are then incomplete, not wrong for the subset.
    """

    records: tuple
    count: int
    limit: int
    limit_reached: bool

    def __post_init__(self) -> None:
        if self.limit <= 0:
            raise ValueError("limit must be positive")
        if self.count != len(self.records):
            raise ValueError(
                f"count {self.count} does not match {len(self.records)} records"
            )
        if self.count > self.limit:
            raise ValueError(f"window holds {self.count} records, limit is {self.limit}")

    @classmethod
    def from_rows(cls, rows: list, limit: int) -> TransactionWindow:
        """
        Build a window from a ``limit + 1`` bounded read.

        A read that came back with more than ``limit`` rows is truncated
        and flagged.
        """
        limit_reached = len(rows) > limit
        records = tuple(rows[:limit])
        return cls(
            records=records,
            count=len(records),
            limit=limit,
            limit_reached=limit_reached,
        )
