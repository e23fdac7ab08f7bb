"""工具函数。"""

from .numeric import to_float, positive_or_zero, to_timestamp

__all__ = ["to_float", "positive_or_zero", "to_timestamp"]
