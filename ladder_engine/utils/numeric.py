"""数值与时间的宽松解析。

引擎对畸形数值不抛异常：无法解析、非有限的值一律视为缺失(None)，
由调用方决定按 0 处理。
"""

import math
from datetime import datetime
from typing import Any, Optional

import pandas as pd


def to_float(x: Any) -> Optional[float]:
    """转换为有限浮点数，失败返回None。"""
    if x is None or isinstance(x, bool):
        return None
    if isinstance(x, str):
        x = x.strip()
        if x == "" or x.lower() in ("nan", "none", "null"):
            return None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(v):
        return None
    return v


def positive_or_zero(x: Any) -> float:
    """有限且大于0则返回该值，否则返回0.0。"""
    v = to_float(x)
    if v is None or v <= 0:
        return 0.0
    return v


def to_timestamp(value: Any) -> float:
    """把成交时间转换为可排序的epoch秒。

    支持 datetime、数值epoch，以及 pandas.Timestamp 能解析的时间字符串
    （ISO-8601 含 'Z' / '+00' / '+00:00' 时区、任意位小数秒、空格分隔等）。
    缺失或无法解析时返回 0.0，此时排序退化为输入顺序。
    """
    if value is None:
        return 0.0
    if isinstance(value, datetime):
        stamp = pd.Timestamp(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        v = to_float(text)
        if v is not None:
            return v
        try:
            stamp = pd.Timestamp(text)
        except (ValueError, TypeError, OverflowError):
            return 0.0
    else:
        v = to_float(value)
        return v if v is not None else 0.0

    if pd.isna(stamp):
        return 0.0
    # naive 时间按 UTC 处理
    if stamp.tzinfo is None:
        stamp = stamp.tz_localize("UTC")
    return stamp.timestamp()
