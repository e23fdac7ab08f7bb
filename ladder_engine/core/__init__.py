"""核心模块。

导出核心类型、接口和DTO。
"""

from .types import (
    Price, Usd, Tokens, TradeTime,
    DRAWDOWN_SCHEDULES, DEFAULT_GROWTH_PCT_PER_LEVEL, ON_PLAN_BAND_PCT,
    DEFAULT_BUY_TOLERANCE, DEFAULT_SELL_TOLERANCE, SELL_STEP_OPTIONS, MAX_SELL_LEVELS,
    Side, DepthProfile, LevelStatus,
    BuyLevel, SellRow, SellPlanLevel, Trade,
)

from .interfaces import ITradeHistoryProvider, IPlanConfigProvider

from .dto import BuyFillResult, SellFillResult
