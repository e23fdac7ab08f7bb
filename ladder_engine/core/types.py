from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Tuple, Union
from enum import Enum

Price = float
Usd = float
Tokens = float
TradeTime = Union[str, datetime, int, float, None]

# 买入计划相对顶部价格的回撤档位（%）
DRAWDOWN_SCHEDULES: Dict[int, Tuple[int, ...]] = {
    70: (20, 30, 40, 50, 60, 70),
    75: (25, 50, 75),
    90: (20, 30, 40, 50, 60, 70, 80, 90),
}

DEFAULT_GROWTH_PCT_PER_LEVEL = 25.0
ON_PLAN_BAND_PCT = 0.02          # 顶层价格之上 2% 仍视为计划内
DEFAULT_BUY_TOLERANCE = 0.0
DEFAULT_SELL_TOLERANCE = 0.05
SELL_STEP_OPTIONS = (50, 100, 150, 200)
MAX_SELL_LEVELS = 60


class Side(Enum):
    BUY = "BUY"
    SELL = "SELL"


class DepthProfile(Enum):
    """买入梯子深度档案。"""
    MODERATE = 70       # 6 levels, 20..70
    AGGRESSIVE = 75     # 3 levels, 25/50/75
    CONSERVATIVE = 90   # 8 levels, 20..90


class LevelStatus(Enum):
    """Alert classification of a ladder level against a live price."""
    FILLED = "FILLED"
    NEAR = "NEAR"
    PENDING = "PENDING"


@dataclass(frozen=True)
class BuyLevel:
    """买入梯子的一个档位（构建后不可变）。

    Attributes:
        level: 1-based 档位序号，1 为最浅（最接近顶部价格）
        drawdown_pct: 相对顶部价格的回撤百分比
        price: 档位价格 = top * (1 - dd/100)
        allocation: 该档位计划投入的USD
        est_tokens: allocation / price（仅用于展示）
    """
    level: int
    drawdown_pct: float
    price: Price
    allocation: Usd
    est_tokens: Tokens


@dataclass(frozen=True)
class SellRow:
    """卖出梯子的一行（不含代币数量，由调用方分配）。"""
    level: int
    target_price: Price
    rise_vs_baseline_pct: float
    sell_pct_of_remaining: float


@dataclass(frozen=True)
class SellPlanLevel:
    """Sell level as consumed by the sell fill engine."""
    target_price: Price
    planned_tokens: Tokens


@dataclass
class Trade:
    """历史成交记录。

    数值字段保持原样，由引擎在使用时做有限性/正数校验，
    非法值视为缺失。

    Attributes:
        price: 成交价格
        quantity: 成交数量（代币）
        fee: 手续费（仅买入侧计入成本）
        trade_time: 成交时间（仅用于排序）
    """
    price: Optional[float]
    quantity: Optional[float]
    fee: Optional[float] = None
    trade_time: TradeTime = None
