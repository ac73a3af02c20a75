"""
InnoDB 健康评分器

从 100 分起按固定规则扣分，得到 [0, 100] 区间的综合健康分。
每个指标最多命中一个档位，规则之间互不影响。

| 条件                                   | 扣分 |
|----------------------------------------|------|
| 历史列表长度 > 1,000,000               | 30   |
| 历史列表长度 > 100,000                 | 15   |
| 缓冲池命中率 < 90                      | 25   |
| 缓冲池命中率 < 95                      | 10   |
| 检查点年龄百分比 > 85                  | 20   |
| 检查点年龄百分比 > 70                  | 10   |
| 挂起读 + 挂起写 > 100                  | 15   |
| 任一信号量等待 > 240 秒                | 25   |
| 清除滞后 > 1,000,000                   | 10   |

@fileoverview InnoDB 综合健康评分
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from typing import List, Tuple

from constants import HealthThresholds as T, StringConstants
from logger import logger
from type_utils import EngineStatus


def max_semaphore_wait(status: EngineStatus) -> float:
    """最长信号量等待时间（秒），无记录时为 0"""
    waits = status.semaphores.long_semaphore_waits
    return max((w.wait_time for w in waits), default=0.0)


def total_pending_io(status: EngineStatus) -> int:
    """挂起读写总数"""
    return status.io.pending_reads + status.io.pending_writes


class HealthScorer:
    """
    健康评分器

    确定性且无副作用，唯一的副作用是命中规则时输出一条警告日志。
    """

    def evaluate(self, status: EngineStatus) -> List[Tuple[str, int]]:
        """
        评估命中的扣分规则

        Returns:
            (问题描述, 扣分) 列表，按规则表顺序
        """
        issues: List[Tuple[str, int]] = []

        history = status.transactions.history_list_length
        if history > T.HISTORY_LIST_CRITICAL:
            issues.append(("Critical transaction history buildup", T.HISTORY_LIST_CRITICAL_PENALTY))
        elif history > T.HISTORY_LIST_WARNING:
            issues.append(("High transaction history list", T.HISTORY_LIST_WARNING_PENALTY))

        hit_rate = status.buffer_pool.hit_rate
        if hit_rate < T.HIT_RATE_CRITICAL:
            issues.append(("Very low buffer pool hit rate", T.HIT_RATE_CRITICAL_PENALTY))
        elif hit_rate < T.HIT_RATE_WARNING:
            issues.append(("Low buffer pool hit rate", T.HIT_RATE_WARNING_PENALTY))

        checkpoint = status.log.checkpoint_age_percent
        if checkpoint > T.CHECKPOINT_AGE_CRITICAL:
            issues.append(("Checkpoint age critically high", T.CHECKPOINT_AGE_CRITICAL_PENALTY))
        elif checkpoint > T.CHECKPOINT_AGE_WARNING:
            issues.append(("Checkpoint age high", T.CHECKPOINT_AGE_WARNING_PENALTY))

        if total_pending_io(status) > T.PENDING_IO_WARNING:
            issues.append(("High pending I/O operations", T.PENDING_IO_PENALTY))

        if max_semaphore_wait(status) > T.SEMAPHORE_WAIT_CRITICAL:
            issues.append(("Critical semaphore wait detected", T.SEMAPHORE_WAIT_PENALTY))

        if status.transactions.purge_lag > T.PURGE_LAG_WARNING:
            issues.append(("High purge lag", T.PURGE_LAG_PENALTY))

        return issues

    def score(self, status: EngineStatus) -> int:
        """
        计算健康分

        Args:
            status: 已解析的引擎状态

        Returns:
            [0, 100] 区间的整数分数
        """
        issues = self.evaluate(status)
        score = T.MAX_SCORE - sum(penalty for _, penalty in issues)

        if issues:
            logger.warn(
                f"InnoDB health issues detected: {', '.join(name for name, _ in issues)}",
                StringConstants.LOG_CATEGORY_SCORER,
                {"rules": [name for name, _ in issues], "score": max(T.MIN_SCORE, score)}
            )

        return max(T.MIN_SCORE, score)
