"""
Module: wip_engines.profitability
Responsibility:
    Derive profitability metrics (gross production, net revenue, gross
    profit, adjustment and profit percentages, chargeout and recovery
    rates) from aggregated WIP totals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Every ratio is guarded: a zero denominator yields Decimal("0"),
      never a division error, NaN or Infinity.
    - Decimal-only arithmetic; no rounding is applied here (presentation
      rounding belongs to the caller).

Failure modes:
    - None.

Formulas:
    grossProduction       = ltdTime + ltdDisb
    ltdAdjustment         = ltdAdj
    netRevenue            = grossProduction + ltdAdjustment
    adjustmentPercentage  = ltdAdjustment / grossProduction * 100
    grossProfit           = netRevenue - ltdCost
    grossProfitPercentage = grossProfit / netRevenue * 100
    averageChargeoutRate  = grossProduction / ltdHours
    averageRecoveryRate   = netRevenue / ltdHours
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from wip_kernel.logging_config import get_logger
from wip_engines.aggregator import WipTotals
from wip_engines.tracer import traced_engine

logger = get_logger("engines.profitability")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def safe_ratio(numerator: Decimal, denominator: Decimal) -> Decimal:
    """``numerator / denominator``, or zero when the denominator is zero."""
    if denominator == _ZERO:
        return _ZERO
    return numerator / denominator


@dataclass(frozen=True)
class ProfitabilityMetrics:
    """
    Profitability view of a task, client or service line.

    Contract:
        Frozen, ephemeral.  Carries the derived metrics plus the
        pass-through totals they were derived from.
    """

    gross_production: Decimal
    ltd_adjustment: Decimal
    net_revenue: Decimal
    adjustment_percentage: Decimal
    ltd_cost: Decimal
    gross_profit: Decimal
    gross_profit_percentage: Decimal
    average_chargeout_rate: Decimal
    average_recovery_rate: Decimal
    bal_wip: Decimal
    bal_time: Decimal
    bal_disb: Decimal
    wip_provision: Decimal
    ltd_time: Decimal
    ltd_disb: Decimal
    ltd_adj: Decimal
    ltd_fee: Decimal
    ltd_hours: Decimal
    task_count: int = 0


@traced_engine(
    "profitability", "1.0", fingerprint_fields=("totals", "task_count")
)
def calculate_profitability(
    totals: WipTotals,
    task_count: int = 0,
) -> ProfitabilityMetrics:
    """
    Derive ProfitabilityMetrics from WipTotals.

    Args:
        totals: Aggregated WIP totals.
        task_count: Number of tasks contributing to the totals.

    Returns:
        ProfitabilityMetrics.
    """
    gross_production = totals.ltd_time + totals.ltd_disb
    ltd_adjustment = totals.ltd_adj
    net_revenue = gross_production + ltd_adjustment
    gross_profit = net_revenue - totals.ltd_cost

    return ProfitabilityMetrics(
        gross_production=gross_production,
        ltd_adjustment=ltd_adjustment,
        net_revenue=net_revenue,
        adjustment_percentage=safe_ratio(ltd_adjustment, gross_production) * _HUNDRED,
        ltd_cost=totals.ltd_cost,
        gross_profit=gross_profit,
        gross_profit_percentage=safe_ratio(gross_profit, net_revenue) * _HUNDRED,
        average_chargeout_rate=safe_ratio(gross_production, totals.ltd_hours),
        average_recovery_rate=safe_ratio(net_revenue, totals.ltd_hours),
        bal_wip=totals.bal_wip,
        bal_time=totals.bal_time,
        bal_disb=totals.bal_disb,
        wip_provision=totals.wip_provision,
        ltd_time=totals.ltd_time,
        ltd_disb=totals.ltd_disb,
        ltd_adj=totals.ltd_adj,
        ltd_fee=totals.ltd_fee,
        ltd_hours=totals.ltd_hours,
        task_count=task_count,
    )
