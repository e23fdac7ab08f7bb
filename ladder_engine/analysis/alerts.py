"""档位告警分类。

根据填充比例和外部提供的实时价格，把每个档位分类为
FILLED / NEAR / PENDING，供通知任务和展示层使用。
"""

from typing import List, Optional, Sequence

from ..core.types import (
    BuyLevel, LevelStatus, SellPlanLevel, Side, Trade,
    DEFAULT_BUY_TOLERANCE,
)
from ..fills.buy_engine import compute_buy_fills
from ..fills.sell_engine import compute_sell_fills
from ..utils.numeric import to_float

BUY_NEAR_PCT = 0.015
SELL_NEAR_PCT = 0.03
FILLED_THRESHOLD = 1.0

# 价格“触及”判定的邻近带
TOUCH_BAND_PCT = 0.001   # 0.10%
TOUCH_BAND_ABS = 0.05    # $0.05


def classify_levels(
    prices: Sequence[float],
    fill_pct: Sequence[float],
    live_price: Optional[float],
    near_pct: float,
    filled_threshold: float = FILLED_THRESHOLD,
) -> List[LevelStatus]:
    """逐档分类。

    Args:
        prices: 档位价格
        fill_pct: 对应的填充比例
        live_price: 实时价格（无效时没有档位会被判为NEAR）
        near_pct: 相对距离阈值
        filled_threshold: 视为已填满的比例

    Returns:
        与 prices 等长的 LevelStatus 列表
    """
    live = to_float(live_price)
    out = []
    for i, p in enumerate(prices):
        pct = to_float(fill_pct[i]) if i < len(fill_pct) else None
        if (pct or 0.0) >= filled_threshold:
            out.append(LevelStatus.FILLED)
            continue
        price = to_float(p)
        if live is not None and live > 0 and price is not None and price > 0:
            if abs(live - price) / price <= near_pct:
                out.append(LevelStatus.NEAR)
                continue
        out.append(LevelStatus.PENDING)
    return out


def buy_plan_alerts(
    levels: Sequence[BuyLevel],
    trades: Sequence[Trade],
    live_price: Optional[float],
    near_pct: float = BUY_NEAR_PCT,
    filled_threshold: float = FILLED_THRESHOLD,
    tolerance: float = DEFAULT_BUY_TOLERANCE,
) -> List[LevelStatus]:
    fills = compute_buy_fills(levels, trades, tolerance)
    return classify_levels(
        [lv.price for lv in levels], fills.fill_pct, live_price, near_pct, filled_threshold,
    )


def sell_plan_alerts(
    levels: Sequence[SellPlanLevel],
    trades: Sequence[Trade],
    live_price: Optional[float],
    near_pct: float = SELL_NEAR_PCT,
    filled_threshold: float = FILLED_THRESHOLD,
    tolerance: float = 0.0,
) -> List[LevelStatus]:
    # 通知任务以零容差判定卖出档位
    fills = compute_sell_fills(levels, trades, tolerance)
    return classify_levels(
        [lv.target_price for lv in levels], fills.fill_pct, live_price, near_pct, filled_threshold,
    )


def has_level_alert(statuses: Sequence[LevelStatus]) -> bool:
    return any(s is LevelStatus.NEAR for s in statuses)


def is_cycle_top_breached(top_price: Optional[float], live_price: Optional[float]) -> bool:
    """实时价格突破计划顶部价格（周期告警）。"""
    top = to_float(top_price)
    live = to_float(live_price)
    return top is not None and live is not None and top > 0 and live > top


def is_level_touched(
    side: Side,
    level_price: float,
    last_price: Optional[float],
    current_price: Optional[float],
) -> bool:
    """档位是否被触及：处于邻近带内，或两次报价之间穿越了档位。"""
    level = to_float(level_price)
    current = to_float(current_price)
    if level is None or current is None:
        return False

    diff = abs(current - level)
    near = diff / max(1.0, level) <= TOUCH_BAND_PCT or diff <= TOUCH_BAND_ABS

    crossed = False
    last = to_float(last_price)
    if last is not None:
        if side is Side.BUY:
            crossed = last > level and current <= level
        else:
            crossed = last < level and current >= level

    return near or crossed
