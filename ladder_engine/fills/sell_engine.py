"""SELL waterfall (token-based) with a price-tolerance eligibility band.

A sell trade is eligible for a level when it executed at or above the
level's target discounted by the tolerance: price >= target * (1 - tol).
Eligible levels are filled shallow -> deep up to their remaining planned
tokens; whatever is left becomes off-plan, valued at the trade's own price.
There is no average-cost constraint on this side.
"""

import logging
from typing import List, Sequence

from ..core.dto import SellFillResult
from ..core.types import SellPlanLevel, Trade, DEFAULT_SELL_TOLERANCE
from ..utils.numeric import to_float, positive_or_zero, to_timestamp

# 设置模块级logger
logger = logging.getLogger(__name__)


def _sorted_sells(trades: Sequence[Trade]) -> List[Trade]:
    """按成交时间升序；时间相同按价格升序，再按输入顺序。"""
    keyed = [
        (
            to_timestamp(getattr(t, "trade_time", None)),
            positive_or_zero(getattr(t, "price", None)),
            idx,
            t,
        )
        for idx, t in enumerate(trades)
    ]
    # 同时成交按价格升序排在输入顺序之前，交换同时成交不改变汇总结果
    keyed.sort(key=lambda item: (item[0], item[1], item[2]))
    return [t for _, _, _, t in keyed]


def eligible_level_indices(
    target_prices: Sequence[float],
    trade_price: float,
    tolerance: float,
) -> List[int]:
    """成交价满足 price >= target * (1 - tol) 的档位下标（由浅到深）。"""
    out = []
    for i, target in enumerate(target_prices):
        if target is None:
            continue
        if trade_price >= target * (1 - tolerance):
            out.append(i)
    return out


def compute_sell_fills(
    levels: Sequence[SellPlanLevel],
    trades: Sequence[Trade],
    tolerance: float = DEFAULT_SELL_TOLERANCE,
) -> SellFillResult:
    """计算卖出梯子的逐档代币分配。

    Args:
        levels: 卖出档位（target_price, planned_tokens），由浅到深
        trades: 卖出成交，顺序任意
        tolerance: 目标价向下放宽比例（默认5%）

    Returns:
        SellFillResult；无档位或无成交时为全零结果
    """
    n = len(levels)
    planned = [positive_or_zero(getattr(lv, "planned_tokens", None)) for lv in levels]
    targets = [to_float(getattr(lv, "target_price", None)) for lv in levels]
    planned_tokens_total = round(sum(planned, 0.0), 8)

    if n == 0 or not trades:
        return SellFillResult.empty(n, planned_tokens_total)

    tol = to_float(tolerance)
    if tol is None:
        tol = DEFAULT_SELL_TOLERANCE

    alloc_tokens = [0.0] * n
    alloc_usd = [0.0] * n
    off_plan_tokens = 0.0
    off_plan_usd = 0.0
    dropped = 0

    for t in _sorted_sells(trades):
        remaining = positive_or_zero(getattr(t, "quantity", None))
        price = positive_or_zero(getattr(t, "price", None))
        if remaining <= 0 or price <= 0:
            dropped += 1
            continue

        for i in eligible_level_indices(targets, price, tol):
            if remaining <= 0:
                break
            need = max(0.0, planned[i] - alloc_tokens[i])
            if need <= 0:
                continue
            take = min(remaining, need)
            alloc_tokens[i] += take
            alloc_usd[i] += take * price
            remaining -= take

        if remaining > 0:
            off_plan_tokens += remaining
            off_plan_usd += remaining * price

    if dropped:
        logger.warning(f"Ignored {dropped} sell trade(s) with invalid price/quantity")

    allocated_tokens = tuple(round(v, 8) for v in alloc_tokens)
    allocated_usd = tuple(round(v, 2) for v in alloc_usd)
    fill_pct = tuple(
        min(1.0, tk / planned[i]) if planned[i] > 0 else 0.0
        for i, tk in enumerate(allocated_tokens)
    )

    result = SellFillResult(
        allocated_tokens=allocated_tokens,
        allocated_usd=allocated_usd,
        fill_pct=fill_pct,
        off_plan_tokens=round(off_plan_tokens, 8),
        off_plan_usd=round(off_plan_usd, 2),
        planned_tokens_total=planned_tokens_total,
        allocated_tokens_total=round(sum(allocated_tokens), 8),
        allocated_usd_total=round(sum(allocated_usd), 2),
    )
    logger.debug(
        f"Sell fills: {n} levels, tol={tol}, allocated={result.allocated_tokens_total}, "
        f"off_plan={result.off_plan_tokens}"
    )
    return result
