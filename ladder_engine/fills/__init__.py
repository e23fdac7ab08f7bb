"""填充引擎：把历史成交对账到梯子档位。"""

from .buy_engine import compute_buy_fills, BuyLadderAllocator, max_usd_within_average
from .sell_engine import compute_sell_fills, eligible_level_indices

__all__ = [
    "compute_buy_fills",
    "BuyLadderAllocator",
    "max_usd_within_average",
    "compute_sell_fills",
    "eligible_level_indices",
]
