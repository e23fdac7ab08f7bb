"""接口定义模块。

本模块定义梯子引擎所依赖的外部协作者接口：
- ITradeHistoryProvider: 成交历史数据源接口
- IPlanConfigProvider: 计划参数数据源接口

引擎本身不做任何I/O，这些接口由持久化层实现。
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .types import Side, Trade


class ITradeHistoryProvider(ABC):
    """成交历史数据源接口。"""

    @abstractmethod
    def get_trades(self, plan_id: str, side: Side) -> List[Trade]:
        """获取某个计划某一方向的全部成交（顺序不作保证）。"""
        pass


class IPlanConfigProvider(ABC):
    """计划参数数据源接口。"""

    @abstractmethod
    def get_buy_plan(self, plan_id: str) -> Optional[dict]:
        """返回买入计划参数（top_price, budget, depth_profile, growth_pct_per_level）。"""
        pass

    def get_sell_plan(self, plan_id: str) -> Optional[dict]:
        """返回卖出计划参数（可选实现）。"""
        return None
