"""分析模块：告警分类与报表。"""

from .alerts import (
    classify_levels, buy_plan_alerts, sell_plan_alerts, has_level_alert,
    is_cycle_top_breached, is_level_touched,
)
from .metrics import (
    weighted_average_price, on_plan_average, pool_tokens,
    buy_fill_table, sell_fill_table, fill_summary,
)

__all__ = [
    "classify_levels",
    "buy_plan_alerts",
    "sell_plan_alerts",
    "has_level_alert",
    "is_cycle_top_breached",
    "is_level_touched",
    "weighted_average_price",
    "on_plan_average",
    "pool_tokens",
    "buy_fill_table",
    "sell_fill_table",
    "fill_summary",
]
