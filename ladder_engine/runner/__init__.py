"""重算触发模块。"""

from .recompute import FillTracker

__all__ = ["FillTracker"]
