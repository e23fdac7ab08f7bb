"""买入梯子构建（build_buy_levels）单元测试。

验证内容：
- 三种深度档案的回撤档位与价格
- 预算几何拆分、向下取整到美分、余数补到最深一档
- 非法输入返回空列表
"""

import math

import pytest

from ladder_engine.core.types import DepthProfile
from ladder_engine.ladder.buy_builder import (
    build_buy_levels, drawdown_schedule, split_budget_cents,
)


# ---------------------------------------------------------------------------
# 档位与价格
# ---------------------------------------------------------------------------

def test_depth_profiles():
    """70 / 75 / 90 档案分别生成 6 / 3 / 8 档，价格严格递减。"""
    for profile, expected_dds in (
        (70, [20, 30, 40, 50, 60, 70]),
        (75, [25, 50, 75]),
        (90, [20, 30, 40, 50, 60, 70, 80, 90]),
    ):
        levels = build_buy_levels(200.0, 5000.0, profile)
        assert [lv.drawdown_pct for lv in levels] == expected_dds
        assert [lv.level for lv in levels] == list(range(1, len(expected_dds) + 1))
        for a, b in zip(levels, levels[1:]):
            assert a.price > b.price, "价格应随深度严格递减"
        for lv, dd in zip(levels, expected_dds):
            assert lv.price == pytest.approx(200.0 * (1 - dd / 100))


def test_depth_profile_enum_and_fallback():
    """接受枚举；未知档案按 90 处理。"""
    assert drawdown_schedule(DepthProfile.AGGRESSIVE) == [25, 50, 75]
    assert drawdown_schedule(55) == [20, 30, 40, 50, 60, 70, 80, 90]
    assert drawdown_schedule(None) == [20, 30, 40, 50, 60, 70, 80, 90]
    assert drawdown_schedule(70.5) == [20, 30, 40, 50, 60, 70, 80, 90]


def test_depth_profile_from_text_or_float():
    """字符串/浮点形式的档案值按数值匹配。"""
    assert drawdown_schedule("75") == [25, 50, 75]
    assert drawdown_schedule(" 70 ") == [20, 30, 40, 50, 60, 70]
    assert drawdown_schedule(90.0) == [20, 30, 40, 50, 60, 70, 80, 90]

    levels = build_buy_levels(100.0, 1000.0, "70")
    assert [lv.drawdown_pct for lv in levels] == [20, 30, 40, 50, 60, 70]


# ---------------------------------------------------------------------------
# 预算拆分
# ---------------------------------------------------------------------------

def test_budget_split_floor_then_patch_last():
    """前 n-1 档为向下取整的美分，最后一档吸收余数，总和严格等于预算。"""
    budget = 1000.0
    cents = split_budget_cents(budget, 6, 25.0)

    weights = [1.25 ** i for i in range(6)]
    sum_w = sum(weights)
    for i in range(5):
        assert cents[i] == math.floor(budget * weights[i] / sum_w * 100)
    assert sum(cents) == 100000


def test_remainder_can_be_negative_or_zero():
    """余数补丁对任意预算都使总和精确。"""
    for budget in (0.01, 0.07, 1.0, 333.33, 12345.67):
        cents = split_budget_cents(budget, 8, 25.0)
        assert sum(cents) == round(budget * 100)


def test_zero_growth_splits_evenly():
    """增长率为 0 时等额拆分。"""
    levels = build_buy_levels(10.0, 300.0, 75, growth_pct_per_level=0)
    assert [lv.allocation for lv in levels] == [100.0, 100.0, 100.0]


def test_est_tokens():
    """est_tokens = allocation / price（6位小数）。"""
    for lv in build_buy_levels(50.0, 999.0, 90):
        assert lv.est_tokens == pytest.approx(lv.allocation / lv.price, abs=1e-6)


# ---------------------------------------------------------------------------
# 非法输入
# ---------------------------------------------------------------------------

def test_invalid_inputs_return_empty():
    """top_price 或 budget 非正、非有限时返回空列表，不抛异常。"""
    assert build_buy_levels(0, 1000) == []
    assert build_buy_levels(100, 0) == []
    assert build_buy_levels(-5, 1000) == []
    assert build_buy_levels(float("nan"), 1000) == []
    assert build_buy_levels(100, float("inf")) == []
    assert build_buy_levels(None, 1000) == []
    assert build_buy_levels("abc", 1000) == []
