"""
wip_services.serialization -- camelCase, JSON-ready payloads.

Decimals are emitted as strings so no precision is lost on the wire;
datetimes as ISO-8601.  The legacy per-bucket adjustment and fee split
fields are always zero; the combined ``ltdAdj`` / ``ltdFee`` replace them.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from wip_engines.balance import ClientBalanceSnapshot
from wip_engines.debtors import DebtorMetrics
from wip_engines.profitability import ProfitabilityMetrics
from wip_kernel.domain.transactions import TransactionWindow

LEGACY_ZERO_FIELDS = ("ltdAdjTime", "ltdAdjDisb", "ltdFeeTime", "ltdFeeDisb")

AGING_KEYS = {
    "0-30": "current",
    "31-60": "days31_60",
    "61-90": "days61_90",
    "91-120": "days91_120",
    "120+": "days120Plus",
}


def decimal_str(value: Decimal) -> str:
    return str(value)


def iso_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_metrics(metrics: ProfitabilityMetrics) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "grossProduction": decimal_str(metrics.gross_production),
        "ltdAdjustment": decimal_str(metrics.ltd_adjustment),
        "netRevenue": decimal_str(metrics.net_revenue),
        "adjustmentPercentage": decimal_str(metrics.adjustment_percentage),
        "ltdCost": decimal_str(metrics.ltd_cost),
        "grossProfit": decimal_str(metrics.gross_profit),
        "grossProfitPercentage": decimal_str(metrics.gross_profit_percentage),
        "averageChargeoutRate": decimal_str(metrics.average_chargeout_rate),
        "averageRecoveryRate": decimal_str(metrics.average_recovery_rate),
        "balWIP": decimal_str(metrics.bal_wip),
        "balTime": decimal_str(metrics.bal_time),
        "balDisb": decimal_str(metrics.bal_disb),
        "wipProvision": decimal_str(metrics.wip_provision),
        "ltdTime": decimal_str(metrics.ltd_time),
        "ltdDisb": decimal_str(metrics.ltd_disb),
        "ltdAdj": decimal_str(metrics.ltd_adj),
        "ltdFee": decimal_str(metrics.ltd_fee),
        "ltdHours": decimal_str(metrics.ltd_hours),
        "taskCount": metrics.task_count,
    }
    for name in LEGACY_ZERO_FIELDS:
        payload[name] = "0"
    return payload


def latest_update(transactions) -> datetime | None:
    """Max ``updated_at`` across records, skipping records without one."""
    stamps = [t.updated_at for t in transactions if t.updated_at is not None]
    return max(stamps) if stamps else None


def window_fields(*windows: TransactionWindow) -> dict[str, Any]:
    """Completeness fields; ``limitReached`` is true if any window was capped."""
    return {
        "transactionLimit": windows[0].limit,
        "limitReached": any(w.limit_reached for w in windows),
    }


def serialize_client_balance(
    snapshot: ClientBalanceSnapshot,
    wip_window: TransactionWindow,
    debtor_window: TransactionWindow,
) -> dict[str, Any]:
    return {
        "wipBalance": decimal_str(snapshot.wip_balance),
        "debtorBalance": decimal_str(snapshot.debtor_balance),
        "balTime": decimal_str(snapshot.bal_time),
        "balDisb": decimal_str(snapshot.bal_disb),
        "lastUpdated": iso_or_none(snapshot.last_updated),
        "wipByTask": {
            task_id: decimal_str(amount)
            for task_id, amount in sorted(snapshot.wip_by_task.items())
        },
        "transactionCount": wip_window.count,
        "debtorTransactionCount": debtor_window.count,
        **window_fields(wip_window, debtor_window),
    }


def serialize_service_lines(
    metrics_by_line: Mapping[str, ProfitabilityMetrics],
) -> dict[str, dict[str, Any]]:
    return {
        code: serialize_metrics(metrics)
        for code, metrics in sorted(metrics_by_line.items())
    }


def serialize_debtor_metrics(metrics: DebtorMetrics) -> dict[str, Any]:
    paid = metrics.avg_payment_days_paid
    return {
        "totalBalance": decimal_str(metrics.total_balance),
        "aging": {
            AGING_KEYS.get(name, name): decimal_str(amount)
            for name, amount in metrics.aging.items()
        },
        "avgPaymentDaysPaid": decimal_str(paid) if paid is not None else None,
        "avgPaymentDaysOutstanding": decimal_str(metrics.avg_payment_days_outstanding),
        "transactionCount": metrics.transaction_count,
        "invoiceCount": metrics.invoice_count,
    }
