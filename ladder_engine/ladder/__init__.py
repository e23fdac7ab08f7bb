"""梯子构建模块。"""

from .buy_builder import build_buy_levels, drawdown_schedule, split_budget_cents
from .sell_builder import build_sell_ladder, plan_sell_levels, split_pool_tokens

__all__ = [
    "build_buy_levels",
    "drawdown_schedule",
    "split_budget_cents",
    "build_sell_ladder",
    "plan_sell_levels",
    "split_pool_tokens",
]
