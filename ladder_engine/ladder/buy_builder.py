"""买入梯子构建。

固定回撤档位 + 几何递增权重：越深的档位分配越多预算。
预算按权重拆分到整数美分，向下取整，余数（可正可负）全部补到最深一档，
保证各档之和严格等于预算。
"""

import logging
import math
from typing import List, Union

import numpy as np

from ..core.types import (
    BuyLevel, DepthProfile, DRAWDOWN_SCHEDULES, DEFAULT_GROWTH_PCT_PER_LEVEL,
)
from ..utils.numeric import to_float

# 设置模块级logger
logger = logging.getLogger(__name__)


def drawdown_schedule(depth_profile: Union[DepthProfile, int]) -> List[int]:
    """返回深度档案对应的回撤百分比列表。

    未知档案按最深的 90 档案处理。
    """
    if isinstance(depth_profile, DepthProfile):
        key = depth_profile.value
    else:
        # 数据源可能以字符串或浮点传入（"70" / 70.0）
        raw = to_float(depth_profile)
        key = int(raw) if raw is not None and raw.is_integer() else None
    schedule = DRAWDOWN_SCHEDULES.get(key)
    if schedule is None:
        logger.warning(f"Unknown depth profile {depth_profile!r}, falling back to 90")
        schedule = DRAWDOWN_SCHEDULES[90]
    return list(schedule)


def _js_round(x: float) -> int:
    return int(math.floor(x + 0.5))


def split_budget_cents(budget: float, n: int, growth_pct_per_level: float) -> List[int]:
    """把预算按几何权重拆分为整数美分。

    Args:
        budget: 总预算（USD）
        n: 档位数
        growth_pct_per_level: 每深一档权重增长百分比

    Returns:
        每档美分列表，之和等于 round(budget * 100)
    """
    if n <= 0:
        return []
    ratio = 1.0 + growth_pct_per_level / 100.0
    weights = np.power(ratio, np.arange(n, dtype=float))
    sum_w = float(weights.sum()) or 1.0

    raw = budget * weights / sum_w
    cents = [int(c) for c in np.floor(raw * 100.0)]
    left = _js_round(budget * 100.0) - sum(cents)
    cents[-1] += left
    return cents


def build_buy_levels(
    top_price: float,
    budget: float,
    depth_profile: Union[DepthProfile, int] = DepthProfile.MODERATE,
    growth_pct_per_level: float = DEFAULT_GROWTH_PCT_PER_LEVEL,
) -> List[BuyLevel]:
    """构建买入梯子。

    Args:
        top_price: 顶部价格（>0）
        budget: 总预算USD（>0）
        depth_profile: 70 / 75 / 90
        growth_pct_per_level: 权重增长率（默认25%）

    Returns:
        由浅到深排列的 BuyLevel 列表；top_price 或 budget 非正时返回空列表
    """
    top = to_float(top_price)
    total = to_float(budget)
    if top is None or total is None or top <= 0 or total <= 0:
        return []

    growth = to_float(growth_pct_per_level)
    if growth is None:
        growth = DEFAULT_GROWTH_PCT_PER_LEVEL

    dds = drawdown_schedule(depth_profile)
    cents = split_budget_cents(total, len(dds), growth)

    levels: List[BuyLevel] = []
    for i, dd in enumerate(dds):
        price = top * (1 - dd / 100)
        allocation = cents[i] / 100
        est_tokens = allocation / price if price > 0 else 0.0
        levels.append(BuyLevel(
            level=i + 1,
            drawdown_pct=dd,
            price=round(price, 8),
            allocation=round(allocation, 2),
            est_tokens=round(est_tokens, 6),
        ))

    logger.debug(
        f"Built {len(levels)} buy levels: top={top}, budget={total}, "
        f"profile={depth_profile}, growth={growth}%"
    )
    return levels
