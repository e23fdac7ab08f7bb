from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ..core.dto import BuyFillResult, SellFillResult
from ..core.types import BuyLevel, LevelStatus, SellPlanLevel, Trade
from ..fills.buy_engine import compute_buy_fills
from ..utils.numeric import to_float, positive_or_zero


def weighted_average_price(trades: Sequence[Trade]) -> Optional[float]:
    """成交加权均价 sum(p*q)/sum(q)；没有有效成交时返回None。"""
    if not trades:
        return None
    cost = 0.0
    qty = 0.0
    for t in trades:
        p = to_float(getattr(t, "price", None))
        q = to_float(getattr(t, "quantity", None))
        if p is not None and q is not None and q > 0:
            cost += p * q
            qty += q
    if qty <= 0:
        return None
    return cost / qty


def on_plan_average(
    levels: Sequence[BuyLevel],
    trades: Sequence[Trade],
    tolerance: float = 0.0,
) -> float:
    """仅按计划内分配计算的平均成本（卖出梯子的默认基准价）。

    每档已分配USD按该档价格折算代币；没有计划内分配时返回0。
    """
    if not levels or not trades:
        return 0.0
    fills = compute_buy_fills(levels, trades, tolerance)

    usd = 0.0
    tokens = 0.0
    for lv, u in zip(levels, fills.allocated_usd):
        if u > 0 and lv.price > 0:
            usd += u
            tokens += u / lv.price
    return usd / tokens if tokens > 0 else 0.0


def pool_tokens(buy_trades: Sequence[Trade], sell_trades: Sequence[Trade]) -> float:
    """可卖代币池 = 买入数量 - 已卖数量（不低于0）。"""
    bought = sum(positive_or_zero(getattr(t, "quantity", None)) for t in buy_trades)
    sold = sum(positive_or_zero(getattr(t, "quantity", None)) for t in sell_trades)
    return max(0.0, bought - sold)


# ---------------- report tables ----------------

def _status_values(statuses: Optional[Sequence[LevelStatus]], n: int) -> List[Optional[str]]:
    if statuses is None:
        return [None] * n
    return [s.value for s in statuses]


def buy_fill_table(
    levels: Sequence[BuyLevel],
    result: BuyFillResult,
    statuses: Optional[Sequence[LevelStatus]] = None,
) -> pd.DataFrame:
    """买入梯子逐档明细表。"""
    status = _status_values(statuses, len(levels))
    rows: List[Dict[str, Any]] = []
    for i, lv in enumerate(levels):
        rows.append({
            "level": lv.level,
            "drawdown_pct": lv.drawdown_pct,
            "price": lv.price,
            "planned_usd": lv.allocation,
            "est_tokens": lv.est_tokens,
            "allocated_usd": result.allocated_usd[i],
            "fill_pct": result.fill_pct[i],
            "status": status[i],
        })
    cols = ['level', 'drawdown_pct', 'price', 'planned_usd', 'est_tokens', 'allocated_usd', 'fill_pct', 'status']
    return pd.DataFrame(rows, columns=cols)


def sell_fill_table(
    levels: Sequence[SellPlanLevel],
    result: SellFillResult,
    statuses: Optional[Sequence[LevelStatus]] = None,
) -> pd.DataFrame:
    """卖出梯子逐档明细表。"""
    status = _status_values(statuses, len(levels))
    rows: List[Dict[str, Any]] = []
    for i, lv in enumerate(levels):
        rows.append({
            "level": i + 1,
            "target_price": lv.target_price,
            "planned_tokens": lv.planned_tokens,
            "allocated_tokens": result.allocated_tokens[i],
            "allocated_usd": result.allocated_usd[i],
            "fill_pct": result.fill_pct[i],
            "status": status[i],
        })
    cols = ['level', 'target_price', 'planned_tokens', 'allocated_tokens', 'allocated_usd', 'fill_pct', 'status']
    return pd.DataFrame(rows, columns=cols)


def fill_summary(result) -> Dict[str, Any]:
    """单次计算的汇总指标。"""
    if isinstance(result, BuyFillResult):
        planned = result.planned_total
        return {
            "side": "BUY",
            "planned_total": planned,
            "allocated_total": result.allocated_total,
            "off_plan": result.off_plan_usd,
            "overall_fill_pct": (result.allocated_total / planned) if planned else 0.0,
            "levels_filled": sum(1 for p in result.fill_pct if p >= 1.0),
            "num_levels": len(result.fill_pct),
        }
    planned = result.planned_tokens_total
    return {
        "side": "SELL",
        "planned_total": planned,
        "allocated_total": result.allocated_tokens_total,
        "allocated_usd_total": result.allocated_usd_total,
        "off_plan": result.off_plan_tokens,
        "off_plan_usd": result.off_plan_usd,
        "overall_fill_pct": (result.allocated_tokens_total / planned) if planned else 0.0,
        "levels_filled": sum(1 for p in result.fill_pct if p >= 1.0),
        "num_levels": len(result.fill_pct),
    }
