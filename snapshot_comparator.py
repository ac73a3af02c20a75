"""
快照对比器

对两个已解析的引擎状态快照计算固定指标列表的变化量与百分比变化，
并标出显著变化。纯计算，无 I/O。

@fileoverview 引擎状态快照对比
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from typing import Callable, List, Tuple

from common_utils import NumberUtils
from constants import HealthThresholds
from type_utils import EngineStatus, MetricDelta, StatusComparison

# 跟踪指标（显示名称, 取值函数），顺序即输出顺序
TRACKED_METRICS: List[Tuple[str, Callable[[EngineStatus], float]]] = [
    ("Transaction History Length", lambda s: s.transactions.history_list_length),
    ("Buffer Pool Hit Rate", lambda s: s.buffer_pool.hit_rate),
    ("Dirty Pages", lambda s: s.buffer_pool.dirty_pages),
    ("Checkpoint Age %", lambda s: s.log.checkpoint_age_percent),
    ("Health Score", lambda s: s.health_score),
]


class SnapshotComparator:
    """快照对比器"""

    def compare(self, before: EngineStatus, after: EngineStatus) -> StatusComparison:
        """
        对比两个快照

        Args:
            before: 较早的快照
            after: 较晚的快照

        Returns:
            StatusComparison，deltas 与 significant_changes 均按跟踪指标顺序排列
        """
        deltas: List[MetricDelta] = []
        significant_changes: List[str] = []

        for name, getter in TRACKED_METRICS:
            before_value = float(getter(before))
            after_value = float(getter(after))
            change = after_value - before_value
            change_percent = NumberUtils.percent_change(before_value, after_value)

            deltas.append(MetricDelta(
                metric=name,
                before=before_value,
                after=after_value,
                change=change,
                change_percent=change_percent
            ))

            if self.is_significant(change, change_percent):
                significant_changes.append(self.describe(name, change, change_percent))

        return StatusComparison(
            before=before,
            after=after,
            deltas=deltas,
            significant_changes=significant_changes
        )

    @staticmethod
    def is_significant(change: float, change_percent: float) -> bool:
        """百分比变化超过 10 或绝对变化超过 5 即为显著"""
        return (
            abs(change_percent) > HealthThresholds.SIGNIFICANT_CHANGE_PERCENT
            or abs(change) > HealthThresholds.SIGNIFICANT_CHANGE_ABSOLUTE
        )

    @staticmethod
    def describe(metric: str, change: float, change_percent: float) -> str:
        """例如 "Transaction History Length increased by 50000.00 (50.0%)" """
        direction = "increased" if change > 0 else "decreased"
        return f"{metric} {direction} by {abs(change):.2f} ({abs(change_percent):.1f}%)"
