"""Ladder allocation engine.

Builds buy/sell price ladders from plan parameters and reconciles executed
trades against them, reporting on-plan and off-plan amounts per level.
"""

from .core import (
    Side, DepthProfile, LevelStatus,
    BuyLevel, SellRow, SellPlanLevel, Trade,
    BuyFillResult, SellFillResult,
)
from .ladder import build_buy_levels, build_sell_ladder, plan_sell_levels
from .fills import compute_buy_fills, compute_sell_fills

__all__ = [
    "Side",
    "DepthProfile",
    "LevelStatus",
    "BuyLevel",
    "SellRow",
    "SellPlanLevel",
    "Trade",
    "BuyFillResult",
    "SellFillResult",
    "build_buy_levels",
    "build_sell_ladder",
    "plan_sell_levels",
    "compute_buy_fills",
    "compute_sell_fills",
]
