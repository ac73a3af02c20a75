"""
快照对比器测试

@description 测试 SnapshotComparator 的变化量与显著变化判定
@author liyq
@since 1.0.0
"""

import pytest

from snapshot_comparator import SnapshotComparator, TRACKED_METRICS


class TestSnapshotComparator:
    """快照对比测试"""

    @pytest.fixture(autouse=True)
    def setup(self):
        """每个测试前的设置"""
        self.comparator = SnapshotComparator()
        yield

    def test_hit_rate_drop_is_significant(self, status_factory):
        """命中率从 95 降到 80 为显著变化"""
        comparison = self.comparator.compare(status_factory(hit_rate=95.0), status_factory(hit_rate=80.0))

        delta = next(d for d in comparison.deltas if d.metric == "Buffer Pool Hit Rate")
        assert delta.before == 95.0
        assert delta.after == 80.0
        assert delta.change == pytest.approx(-15.0)
        assert delta.change_percent == pytest.approx(-15.789, rel=1e-3)
        assert comparison.significant_changes == ["Buffer Pool Hit Rate decreased by 15.00 (15.8%)"]

    def test_deltas_follow_tracked_metric_order(self, status_factory):
        """每个跟踪指标都有一条变化记录，顺序固定"""
        comparison = self.comparator.compare(status_factory(), status_factory())

        assert [d.metric for d in comparison.deltas] == [name for name, _ in TRACKED_METRICS]
        assert comparison.significant_changes == []

    def test_zero_baseline(self, status_factory):
        """基准为 0 时百分比为 0（未变）或 100（出现）"""
        unchanged = self.comparator.compare(status_factory(dirty_pages=0), status_factory(dirty_pages=0))
        appeared = self.comparator.compare(status_factory(dirty_pages=0), status_factory(dirty_pages=3))

        unchanged_delta = next(d for d in unchanged.deltas if d.metric == "Dirty Pages")
        appeared_delta = next(d for d in appeared.deltas if d.metric == "Dirty Pages")
        assert unchanged_delta.change_percent == 0.0
        assert appeared_delta.change_percent == 100.0
        assert appeared_delta.change == 3.0

    def test_history_growth_reported_as_increase(self, status_factory):
        """历史列表增长应描述为 increased"""
        comparison = self.comparator.compare(
            status_factory(history_list_length=100_000),
            status_factory(history_list_length=150_000)
        )

        assert "Transaction History Length increased by 50000.00 (50.0%)" in comparison.significant_changes

    def test_comparison_keeps_snapshots(self, status_factory):
        """对比结果包含两个原始快照"""
        before, after = status_factory(health_score=90), status_factory(health_score=70)

        comparison = self.comparator.compare(before, after)

        assert comparison.before == before
        assert comparison.after == after
        assert "Health Score decreased by 20.00 (22.2%)" in comparison.significant_changes

    @pytest.mark.parametrize("change,pct,expected", [
        (6.0, 1.0, True),
        (1.0, 11.0, True),
        (-6.0, -1.0, True),
        (5.0, 10.0, False),
        (0.0, 0.0, False),
    ])
    def test_is_significant(self, change, pct, expected):
        """百分比超过 10 或绝对变化超过 5 为显著"""
        assert SnapshotComparator.is_significant(change, pct) is expected
