"""BUY waterfall (USD-based) with per-block average constraints.

Reconciles executed buys against a buy ladder:
- Only buys priced within 2% (+ tolerance) above the shallowest level are
  candidate on-plan; everything above goes to the off-plan pool.
- Candidates are consumed oldest -> newest so earlier trades lock in their
  share before later ones.
- The ladder never absorbs more than its planned USD total.
- For every depth k, while the cumulative block 1..k is being filled the
  blended average cost never exceeds the block's planned average A_k.
- If the ladder is still under-funded, the off-plan pool is recruited
  cheapest-first under the same average constraint.

The absorbed total is then spread top-down over the levels for reporting.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..core.dto import BuyFillResult
from ..core.types import BuyLevel, Trade, ON_PLAN_BAND_PCT, DEFAULT_BUY_TOLERANCE
from ..utils.numeric import to_float, positive_or_zero, to_timestamp

# 设置模块级logger
logger = logging.getLogger(__name__)


EPS = 1e-9


@dataclass
class _BuySlice:
    """A buy trade normalised to USD, tracking how much of it the ladder used."""
    price: float
    usd_total: float
    usd_assigned: float = 0.0

    @property
    def usd_remaining(self) -> float:
        return self.usd_total - self.usd_assigned


def max_usd_within_average(
    ladder_usd: float,
    ladder_tokens: float,
    price: float,
    allowed_avg: float,
    hi: float,
) -> float:
    """Largest x in [0, hi] keeping (ladder_usd + x) / (ladder_tokens + x / price) <= allowed_avg.

    Closed form of the constraint:
        x * (1 - A / price) <= A * ladder_tokens - ladder_usd
    Adding at a price above A raises the blend, so x is bounded by the root.
    Adding at or below A only lowers it, so either all of hi fits or nothing
    does (the current blend already sits above A).
    """
    if not (hi > 0) or not (price > 0):
        return 0.0

    ceiling = allowed_avg + EPS

    new_tokens = ladder_tokens + hi / price
    if (ladder_usd + hi) / new_tokens <= ceiling:
        return hi

    if price <= ceiling:
        return 0.0

    root = (ceiling * ladder_tokens - ladder_usd) / (1.0 - ceiling / price)
    return min(hi, max(0.0, root))


class BuyLadderAllocator:
    """按累计块(1..k)填充梯子的分配器。

    一次调用 compute_buy_fills 创建一个实例，不在调用之间复用。

    Attributes:
        cum_usd: 累计计划USD U_k
        cum_tokens: 累计计划代币 T_k
        target_avg: 块平均成本上限 A_k = U_k / T_k
        ladder_usd: 已吸收USD
        ladder_tokens: 已吸收代币
        steps: 每次吸收后的 (ladder_usd, ladder_tokens, block_idx) 轨迹
    """

    def __init__(self, planned_usd: Sequence[float], prices: Sequence[float]):
        n = len(planned_usd)
        self.cum_usd: List[float] = [0.0] * n
        self.cum_tokens: List[float] = [0.0] * n
        self.target_avg: List[float] = [0.0] * n

        u_acc = 0.0
        t_acc = 0.0
        for i in range(n):
            u_acc += planned_usd[i]
            t_acc += planned_usd[i] / prices[i] if prices[i] > 0 else 0.0
            self.cum_usd[i] = u_acc
            self.cum_tokens[i] = t_acc
            self.target_avg[i] = u_acc / t_acc if t_acc > 0 else 0.0

        self.planned_total = self.cum_usd[-1] if n else 0.0
        self.ladder_usd = 0.0
        self.ladder_tokens = 0.0
        self.steps: List[Tuple[float, float, int]] = []

    @property
    def is_full(self) -> bool:
        return self.ladder_usd >= self.planned_total - EPS

    def open_block(self) -> Optional[int]:
        """当前待填充块：满足 ladder_usd < U_k 的最小 k。"""
        for k, cap in enumerate(self.cum_usd):
            if self.ladder_usd < cap - EPS:
                return k
        return None

    def absorb(self, t: _BuySlice) -> float:
        """尽可能吸收一笔成交的剩余USD，返回本次吸收量。"""
        taken = 0.0
        while t.usd_remaining > EPS and not self.is_full:
            k = self.open_block()
            if k is None:
                break

            allowed_avg = self.target_avg[k]
            if not (allowed_avg > 0):
                break

            hi = min(
                t.usd_remaining,
                self.cum_usd[k] - self.ladder_usd,
                self.planned_total - self.ladder_usd,
            )
            if not (hi > EPS):
                break

            x = max_usd_within_average(
                self.ladder_usd, self.ladder_tokens, t.price, allowed_avg, hi,
            )
            if not (x > EPS):
                # 该笔成交无法再进入当前块；后续更便宜的成交仍可能补足
                break

            self.ladder_usd += x
            self.ladder_tokens += x / t.price
            t.usd_assigned += x
            taken += x
            self.steps.append((self.ladder_usd, self.ladder_tokens, k))
        return taken


def _normalize_buys(trades: Sequence[Trade]) -> List[_BuySlice]:
    """校验并按成交时间升序排列。

    同一时间的成交按价格升序，再按输入顺序；同价同时的成交对梯子等价，
    因此交换同一时间的成交不会改变汇总结果。
    """
    keyed = []
    dropped = 0
    for idx, tr in enumerate(trades):
        price = to_float(getattr(tr, "price", None))
        qty = to_float(getattr(tr, "quantity", None))
        fee = positive_or_zero(getattr(tr, "fee", None))
        if price is None or qty is None or price <= 0 or qty <= 0:
            dropped += 1
            continue
        usd_total = price * qty + fee
        if not (usd_total > 0):
            dropped += 1
            continue
        ts = to_timestamp(getattr(tr, "trade_time", None))
        keyed.append((ts, price, idx, _BuySlice(price=price, usd_total=usd_total)))

    if dropped:
        logger.warning(f"Ignored {dropped} buy trade(s) with invalid price/quantity")

    # 同时成交按价格升序排在输入顺序之前，交换同时成交不改变汇总结果
    keyed.sort(key=lambda item: (item[0], item[1], item[2]))
    return [s for _, _, _, s in keyed]


def compute_buy_fills(
    levels: Sequence[BuyLevel],
    trades: Sequence[Trade],
    tolerance: float = DEFAULT_BUY_TOLERANCE,
) -> BuyFillResult:
    """计算买入梯子的逐档计划内USD。

    Args:
        levels: build_buy_levels 的输出（由浅到深）
        trades: 买入成交，顺序任意
        tolerance: 在 2% 基础带之上额外放宽的比例（负值按0处理）

    Returns:
        BuyFillResult；无档位、无预算或无有效成交时为全零结果
    """
    n = len(levels)
    planned_usd = [positive_or_zero(getattr(lv, "allocation", None)) for lv in levels]
    prices = [positive_or_zero(getattr(lv, "price", None)) for lv in levels]
    planned_total = round(sum(planned_usd, 0.0), 2)

    if n == 0 or not (planned_total > 0) or not trades:
        return BuyFillResult.empty(n, planned_total)

    top_price = max(prices)
    if not (top_price > 0):
        return BuyFillResult.empty(n, planned_total)

    extra_tol = to_float(tolerance) or 0.0
    band_pct = ON_PLAN_BAND_PCT + max(0.0, extra_tol)
    on_plan_price_max = top_price * (1 + band_pct)

    slices = _normalize_buys(trades)
    if not slices:
        return BuyFillResult.empty(n, planned_total)

    total_usd_all_trades = sum(s.usd_total for s in slices)

    # 边界价格（== on_plan_price_max）按计划内处理
    candidates = [s for s in slices if s.price <= on_plan_price_max]
    off_plan_pool = [s for s in slices if s.price > on_plan_price_max]

    logger.debug(
        f"Buy fills: {n} levels, planned={planned_total}, band_max={on_plan_price_max:.8f}, "
        f"candidates={len(candidates)}, off_plan_pool={len(off_plan_pool)}"
    )

    allocator = BuyLadderAllocator(planned_usd, prices)

    for s in candidates:
        allocator.absorb(s)
        if allocator.is_full:
            break

    if not allocator.is_full and off_plan_pool:
        # 便宜的先用：对平均成本最有利
        for s in sorted(off_plan_pool, key=lambda s: s.price):
            allocator.absorb(s)
            if allocator.is_full:
                break

    # 自上而下分配到各档（仅用于展示）
    remaining = allocator.ladder_usd
    allocated_by_level = [0.0] * n
    for i in range(n):
        planned = planned_usd[i]
        if not (planned > 0) or not (remaining > 0):
            continue
        take = min(planned, remaining)
        allocated_by_level[i] = take
        remaining -= take

    allocated_usd = tuple(round(u, 2) for u in allocated_by_level)
    fill_pct = tuple(
        min(1.0, u / planned_usd[i]) if planned_usd[i] > 0 else 0.0
        for i, u in enumerate(allocated_usd)
    )
    allocated_total = round(sum(allocated_usd), 2)
    off_plan_usd = round(max(0.0, total_usd_all_trades - allocated_total), 2)

    logger.debug(
        f"Buy fills done: absorbed={allocator.ladder_usd:.6f}, "
        f"allocated_total={allocated_total}, off_plan={off_plan_usd}"
    )

    return BuyFillResult(
        allocated_usd=allocated_usd,
        fill_pct=fill_pct,
        off_plan_usd=off_plan_usd,
        planned_total=planned_total,
        allocated_total=allocated_total,
    )
