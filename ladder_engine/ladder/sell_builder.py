"""卖出梯子构建。

- build_sell_ladder: 目标价按 baseline * (1 + step%)^i 几何递增
- plan_sell_levels: 调用方侧的代币分配，每档卖出剩余池的固定百分比，
  最后一档吸收全部剩余，使梯子恰好用尽代币池
"""

import logging
from typing import List

from ..core.types import SellRow, SellPlanLevel, MAX_SELL_LEVELS
from ..utils.numeric import to_float, positive_or_zero

# 设置模块级logger
logger = logging.getLogger(__name__)


def build_sell_ladder(
    baseline_price: float,
    step_pct: float,
    levels_count: int,
    sell_pct_of_remaining: float,
) -> List[SellRow]:
    """构建卖出梯子的价格行。

    Args:
        baseline_price: 基准价（通常为计划内平均成本）
        step_pct: 每档涨幅百分比（50/100/150/200）
        levels_count: 档位数
        sell_pct_of_remaining: 每档卖出剩余池的百分比（仅透传，供展示）

    Returns:
        由浅到深（价格递增）的 SellRow 列表；非法输入返回空列表
    """
    baseline = to_float(baseline_price)
    count = to_float(levels_count)
    step = to_float(step_pct)
    if baseline is None or count is None or baseline <= 0 or count <= 0:
        return []
    if step is None or step <= 0:
        logger.warning(f"Invalid sell step {step_pct!r}, no ladder built")
        return []

    ratio = 1 + step / 100
    pct = to_float(sell_pct_of_remaining) or 0.0

    rows = []
    for i in range(int(count)):
        price = baseline * ratio ** (i + 1)
        rise_pct = (price - baseline) / baseline * 100
        rows.append(SellRow(
            level=i + 1,
            target_price=round(price, 8),
            rise_vs_baseline_pct=round(rise_pct, 4),
            sell_pct_of_remaining=pct,
        ))
    return rows


def split_pool_tokens(pool_tokens: float, levels_count: int, sell_pct_of_remaining: float) -> List[float]:
    """按“剩余池百分比”拆分代币，最后一档取走全部剩余。"""
    if levels_count <= 0:
        return []
    remaining = positive_or_zero(pool_tokens)
    frac = max(0.0, to_float(sell_pct_of_remaining) or 0.0) / 100

    out: List[float] = []
    for i in range(levels_count):
        if i == levels_count - 1:
            tokens = remaining
        else:
            tokens = max(0.0, remaining * frac)
        out.append(tokens)
        remaining = max(0.0, remaining - tokens)
    return out


def plan_sell_levels(
    baseline_price: float,
    step_pct: float,
    levels_count: int,
    sell_pct_of_remaining: float,
    pool_tokens: float,
) -> List[SellPlanLevel]:
    """生成可直接交给 compute_sell_fills 的卖出档位。

    档位数超过上限时截断到 MAX_SELL_LEVELS。
    """
    count = to_float(levels_count)
    if count is not None and count > MAX_SELL_LEVELS:
        logger.warning(f"levels_count={levels_count} exceeds {MAX_SELL_LEVELS}, clamping")
        levels_count = MAX_SELL_LEVELS

    rows = build_sell_ladder(baseline_price, step_pct, levels_count, sell_pct_of_remaining)
    tokens = split_pool_tokens(pool_tokens, len(rows), sell_pct_of_remaining)
    return [
        SellPlanLevel(target_price=row.target_price, planned_tokens=tk)
        for row, tk in zip(rows, tokens)
    ]
