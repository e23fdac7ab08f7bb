"""计算结果数据传输对象(DTO)。

本模块定义填充引擎的输出结构：
- BuyFillResult: 买入梯子的逐档USD分配结果
- SellFillResult: 卖出梯子的逐档代币分配结果

结果对象不可变，每次调用引擎都会重新生成，引擎本身不保存任何状态。
展示层与告警逻辑只消费这些对象。
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Tuple

from .types import Tokens, Usd


@dataclass(frozen=True)
class BuyFillResult:
    """买入填充结果（不可变）。

    Attributes:
        allocated_usd: 每档计划内USD（保留2位小数）
        fill_pct: 每档填充比例，范围[0, 1]
        off_plan_usd: 未被任何档位吸收的USD
        planned_total: 所有档位计划USD之和
        allocated_total: 实际分配到梯子的USD之和
    """
    allocated_usd: Tuple[Usd, ...]
    fill_pct: Tuple[float, ...]
    off_plan_usd: Usd
    planned_total: Usd
    allocated_total: Usd

    @classmethod
    def empty(cls, n_levels: int, planned_total: Usd = 0.0) -> "BuyFillResult":
        """全零结果，保留 planned_total 元数据。"""
        zeros = tuple(0.0 for _ in range(n_levels))
        return cls(
            allocated_usd=zeros,
            fill_pct=zeros,
            off_plan_usd=0.0,
            planned_total=planned_total,
            allocated_total=0.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["allocated_usd"] = list(self.allocated_usd)
        d["fill_pct"] = list(self.fill_pct)
        return d


@dataclass(frozen=True)
class SellFillResult:
    """卖出填充结果（不可变）。

    Attributes:
        allocated_tokens: 每档计划内代币数量（保留8位小数）
        allocated_usd: 每档计划内成交额（保留2位小数）
        fill_pct: 每档填充比例，范围[0, 1]
        off_plan_tokens: 超出可用档位容量的代币
        off_plan_usd: 计划外代币按各自成交价计的USD
        planned_tokens_total: 计划代币总量
        allocated_tokens_total: 已分配代币总量
        allocated_usd_total: 已分配成交额总量
    """
    allocated_tokens: Tuple[Tokens, ...]
    allocated_usd: Tuple[Usd, ...]
    fill_pct: Tuple[float, ...]
    off_plan_tokens: Tokens
    off_plan_usd: Usd
    planned_tokens_total: Tokens
    allocated_tokens_total: Tokens
    allocated_usd_total: Usd

    @classmethod
    def empty(cls, n_levels: int, planned_tokens_total: Tokens = 0.0) -> "SellFillResult":
        zeros = tuple(0.0 for _ in range(n_levels))
        return cls(
            allocated_tokens=zeros,
            allocated_usd=zeros,
            fill_pct=zeros,
            off_plan_tokens=0.0,
            off_plan_usd=0.0,
            planned_tokens_total=planned_tokens_total,
            allocated_tokens_total=0.0,
            allocated_usd_total=0.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for key in ("allocated_tokens", "allocated_usd", "fill_pct"):
            d[key] = list(getattr(self, key))
        return d
