"""买入填充引擎（compute_buy_fills）单元测试。

验证内容：
- 闭式平均成本约束求解
- 2% 计划内价格带（含边界）与 tolerance 放宽
- 按时间先后锁定额度、计划外池按价格从低到高补充
- 自上而下的逐档展示分配
- 非法成交被忽略、退化输入返回全零结果
"""

import pytest

from ladder_engine.core.types import Trade
from ladder_engine.fills.buy_engine import (
    BuyLadderAllocator, _BuySlice, _normalize_buys,
    compute_buy_fills, max_usd_within_average,
)

from tests.conftest import buy, make_level, ts


def two_level_ladder():
    """L1: 100 USD @100，L2: 100 USD @50 → A_1 = 100，A_2 = 200/3。"""
    return [make_level(1, 100.0, 100.0), make_level(2, 50.0, 100.0)]


# ---------------------------------------------------------------------------
# 平均成本约束
# ---------------------------------------------------------------------------

def test_max_usd_takes_everything_when_average_holds():
    assert max_usd_within_average(0.0, 0.0, 80.0, 100.0, 50.0) == 50.0
    assert max_usd_within_average(100.0, 2.0, 40.0, 60.0, 30.0) == 30.0


def test_max_usd_closed_form_root():
    """价格高于上限时，取使平均成本恰好达到上限的金额。"""
    # 已有 100 USD / 2 tokens (avg 50)，以 100 的价格加仓，上限 60
    x = max_usd_within_average(100.0, 2.0, 100.0, 60.0, 1000.0)
    # (100 + x) / (2 + x/100) = 60  →  x = 20 / 0.4 = 50
    assert x == pytest.approx(50.0, abs=1e-6)
    assert (100.0 + x) / (2.0 + x / 100.0) <= 60.0 + 1e-6


def test_max_usd_clamped_to_zero():
    """当前平均已高于上限且价格不够便宜时返回 0。"""
    assert max_usd_within_average(0.0, 0.0, 101.0, 100.0, 50.0) == 0.0
    # avg 100 > 66.7，以 100 加仓只会维持在 100
    assert max_usd_within_average(100.0, 1.0, 100.0, 200.0 / 3, 100.0) == 0.0
    assert max_usd_within_average(0.0, 0.0, 50.0, 100.0, 0.0) == 0.0


def test_allocator_targets():
    alloc = BuyLadderAllocator([100.0, 100.0], [100.0, 50.0])
    assert alloc.cum_usd == [100.0, 200.0]
    assert alloc.cum_tokens == pytest.approx([1.0, 3.0])
    assert alloc.target_avg == pytest.approx([100.0, 200.0 / 3])
    assert alloc.open_block() == 0


def test_allocator_moves_through_blocks():
    """一笔便宜成交可跨块填满整个梯子。"""
    alloc = BuyLadderAllocator([100.0, 100.0], [100.0, 50.0])
    s = _BuySlice(price=40.0, usd_total=500.0)
    taken = alloc.absorb(s)
    assert taken == pytest.approx(200.0)
    assert alloc.is_full
    assert alloc.open_block() is None
    assert s.usd_remaining == pytest.approx(300.0)
    assert [k for _, _, k in alloc.steps] == [0, 1]


# ---------------------------------------------------------------------------
# 价格带
# ---------------------------------------------------------------------------

def test_band_boundary_is_inclusive():
    """价格恰好等于 top * 1.02 的成交按计划内处理（按时间顺序参与）。"""
    levels = two_level_ladder()
    trades = [
        Trade(price=50.0, quantity=1.0, trade_time=ts(0)),
        Trade(price=102.0, quantity=1.0, trade_time=ts(1)),
        Trade(price=40.0, quantity=1.0, trade_time=ts(2)),
    ]
    r = compute_buy_fills(levels, trades)
    assert r.allocated_usd == pytest.approx((100.0, 40.0))
    assert r.allocated_total == pytest.approx(140.0)
    assert r.off_plan_usd == pytest.approx(52.0)


def test_above_band_goes_to_off_plan_pool():
    """略高于边界的成交进入计划外池，在计划内成交之后按价格补充。"""
    levels = two_level_ladder()
    trades = [
        Trade(price=50.0, quantity=1.0, trade_time=ts(0)),
        Trade(price=102.01, quantity=1.0, trade_time=ts(1)),
        Trade(price=40.0, quantity=1.0, trade_time=ts(2)),
    ]
    r = compute_buy_fills(levels, trades)
    assert r.allocated_usd == pytest.approx((100.0, 92.01))
    assert r.allocated_total == pytest.approx(192.01)
    assert r.off_plan_usd == pytest.approx(0.0)


def test_tolerance_widens_band():
    """tolerance 在 2% 之上放宽；负值按 0 处理。"""
    levels = two_level_ladder()
    trades = [
        Trade(price=50.0, quantity=1.0, trade_time=ts(0)),
        Trade(price=102.01, quantity=1.0, trade_time=ts(1)),
        Trade(price=40.0, quantity=1.0, trade_time=ts(2)),
    ]
    widened = compute_buy_fills(levels, trades, tolerance=0.01)
    assert widened.allocated_total == pytest.approx(140.0)

    negative = compute_buy_fills(levels, trades, tolerance=-0.5)
    assert negative.allocated_total == pytest.approx(192.01)


# ---------------------------------------------------------------------------
# 时间顺序
# ---------------------------------------------------------------------------

def test_earlier_trade_locks_in_capacity():
    """先到的便宜成交压低均价，使后到的较贵成交也能进入梯子。"""
    levels = [make_level(1, 100.0, 100.0)]
    cheap_first = [buy(90.0, 50.0, minute=1), buy(101.0, 60.0, minute=2)]
    r1 = compute_buy_fills(levels, cheap_first)
    assert r1.allocated_total == pytest.approx(100.0)

    # 较贵成交先到：空梯子上以 101 买入会突破 A_1 = 100，无法计入
    expensive_first = [buy(90.0, 50.0, minute=2), buy(101.0, 60.0, minute=1)]
    r2 = compute_buy_fills(levels, expensive_first)
    assert r2.allocated_total == pytest.approx(50.0)
    assert r2.off_plan_usd == pytest.approx(60.0)


def test_normalize_sorts_by_time_then_price_then_input():
    trades = [
        Trade(price=30.0, quantity=1.0, trade_time=ts(5)),
        Trade(price=20.0, quantity=1.0, trade_time=ts(1)),
        Trade(price=25.0, quantity=2.0, trade_time=ts(5)),
        Trade(price=25.0, quantity=3.0, trade_time=ts(5)),
        Trade(price=10.0, quantity=1.0, trade_time=None),
    ]
    slices = _normalize_buys(trades)
    assert [(s.price, s.usd_total) for s in slices] == [
        (10.0, 10.0), (20.0, 20.0), (25.0, 50.0), (25.0, 75.0), (30.0, 30.0),
    ]


def test_off_plan_pool_recruited_cheapest_first():
    """计划外池按价格从低到高补充，而不是按时间。"""
    levels = [make_level(1, 100.0, 100.0), make_level(2, 90.0, 100.0)]
    trades = [
        Trade(price=120.0, quantity=1.0, trade_time=ts(0)),
        Trade(price=105.0, quantity=1.0, trade_time=ts(1)),
        Trade(price=60.0, quantity=1.0, trade_time=ts(2)),
    ]
    r = compute_buy_fills(levels, trades)
    # 60 先入（计划内），随后计划外池中 105 优先于 120
    # 块1：60 USD @60 + 40 USD @105 → avg 100/(1+0.381) ≈ 72.4 ≤ 100
    assert r.allocated_usd[0] == pytest.approx(100.0)
    assert r.allocated_total == pytest.approx(200.0)


# ---------------------------------------------------------------------------
# 逐档展示分配与手续费
# ---------------------------------------------------------------------------

def test_top_down_distribution():
    """吸收总额自上而下填充各档。"""
    levels = [make_level(1, 100.0, 100.0), make_level(2, 50.0, 100.0), make_level(3, 25.0, 100.0)]
    r = compute_buy_fills(levels, [buy(20.0, 250.0)])
    assert r.allocated_usd == pytest.approx((100.0, 100.0, 50.0))
    assert r.fill_pct == pytest.approx((1.0, 1.0, 0.5))
    assert r.planned_total == pytest.approx(300.0)


def test_fee_added_to_cost():
    """手续费计入成交USD。"""
    levels = [make_level(1, 100.0, 1000.0)]
    r = compute_buy_fills(levels, [Trade(price=90.0, quantity=1.0, fee=2.5)])
    assert r.allocated_total == pytest.approx(92.5)
    assert r.off_plan_usd == pytest.approx(0.0)


@pytest.mark.parametrize("fee", [-5.0, -20.0, float("nan"), "n/a"])
def test_invalid_fee_counts_as_zero(fee):
    """负数或无法解析的手续费按0处理，成交本身仍计入。"""
    levels = [make_level(1, 100.0, 1000.0)]
    r = compute_buy_fills(levels, [Trade(price=10.0, quantity=1.0, fee=fee)])
    assert r.allocated_total == pytest.approx(10.0)
    assert r.allocated_total + r.off_plan_usd == pytest.approx(10.0)


# ---------------------------------------------------------------------------
# 退化输入
# ---------------------------------------------------------------------------

def test_invalid_trades_ignored():
    """价格/数量非正或非有限的成交被忽略。"""
    levels = two_level_ladder()
    trades = [
        Trade(price=0.0, quantity=5.0),
        Trade(price=float("nan"), quantity=5.0),
        Trade(price=50.0, quantity=-1.0),
        Trade(price="bad", quantity=1.0),
        Trade(price=None, quantity=None),
        Trade(price=50.0, quantity=1.0),
    ]
    r = compute_buy_fills(levels, trades)
    assert r.allocated_total == pytest.approx(50.0)
    assert r.off_plan_usd == pytest.approx(0.0)


def test_only_invalid_trades_gives_zero_result():
    levels = two_level_ladder()
    r = compute_buy_fills(levels, [Trade(price=-1.0, quantity=1.0)])
    assert r.allocated_usd == (0.0, 0.0)
    assert r.off_plan_usd == 0.0
    assert r.planned_total == pytest.approx(200.0)


def test_degenerate_ladders():
    """无档位或预算为 0 时返回全零结果。"""
    r = compute_buy_fills([], [buy(50.0, 100.0)])
    assert r.allocated_usd == ()
    assert r.planned_total == 0.0

    zero = [make_level(1, 100.0, 0.0), make_level(2, 50.0, 0.0)]
    r = compute_buy_fills(zero, [buy(50.0, 100.0)])
    assert r.allocated_usd == (0.0, 0.0)
    assert r.fill_pct == (0.0, 0.0)
    assert r.off_plan_usd == 0.0


def test_to_dict():
    r = compute_buy_fills(two_level_ladder(), [buy(40.0, 80.0)])
    d = r.to_dict()
    assert d["allocated_usd"] == [80.0, 0.0]
    assert d["allocated_total"] == pytest.approx(80.0)
    assert set(d) == {"allocated_usd", "fill_pct", "off_plan_usd", "planned_total", "allocated_total"}
