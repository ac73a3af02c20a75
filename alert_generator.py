"""
健康告警生成器

对引擎状态与复制状态按固定阈值独立评估，生成带阈值、当前值与修复建议的告警。
引擎告警的阈值和档位与 HealthScorer 完全一致，输出顺序固定：
事务历史、缓冲池、检查点年龄、挂起 I/O、信号量、清除滞后。

@fileoverview 健康告警生成
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from typing import Dict, List, Optional

from constants import AlertMetrics, HealthThresholds as T, Recommendations
from health_scorer import max_semaphore_wait, total_pending_io
from type_utils import AlertSeverity, EngineStatus, HealthAlert, ReplicaType, ReplicationStatus

def dirty_page_ratio(status: EngineStatus) -> float:
    """脏页占数据页的百分比，数据页为 0 时为 0"""
    database_pages = status.buffer_pool.database_pages
    if database_pages <= 0:
        return 0.0
    return status.buffer_pool.dirty_pages / database_pages * 100


_SEVERITY_RANK = {
    AlertSeverity.INFO: 0,
    AlertSeverity.WARNING: 1,
    AlertSeverity.CRITICAL: 2
}


class AlertGenerator:
    """告警生成器，无状态，告警按需重新计算，不做存储"""

    def alerts(self, status: EngineStatus) -> List[HealthAlert]:
        """
        生成引擎健康告警

        Args:
            status: 已解析的引擎状态

        Returns:
            按固定指标顺序排列的告警列表，全部健康时为空
        """
        alerts: List[HealthAlert] = []

        history = status.transactions.history_list_length
        if history > T.HISTORY_LIST_CRITICAL:
            alerts.append(HealthAlert(
                severity=AlertSeverity.CRITICAL,
                metric=AlertMetrics.TRANSACTION_HISTORY_LENGTH,
                message="Transaction history list is critically high",
                threshold=T.HISTORY_LIST_CRITICAL,
                current_value=history,
                recommendation=Recommendations.HISTORY_LIST_CRITICAL
            ))
        elif history > T.HISTORY_LIST_WARNING:
            alerts.append(HealthAlert(
                severity=AlertSeverity.WARNING,
                metric=AlertMetrics.TRANSACTION_HISTORY_LENGTH,
                message="Transaction history list is elevated",
                threshold=T.HISTORY_LIST_WARNING,
                current_value=history,
                recommendation=Recommendations.HISTORY_LIST_WARNING
            ))

        hit_rate = status.buffer_pool.hit_rate
        if hit_rate < T.HIT_RATE_CRITICAL:
            alerts.append(HealthAlert(
                severity=AlertSeverity.CRITICAL,
                metric=AlertMetrics.BUFFER_POOL_HIT_RATE,
                message="Buffer pool hit rate is critically low, causing heavy disk I/O",
                threshold=T.HIT_RATE_CRITICAL,
                current_value=hit_rate,
                recommendation=Recommendations.HIT_RATE_CRITICAL
            ))
        elif hit_rate < T.HIT_RATE_WARNING:
            alerts.append(HealthAlert(
                severity=AlertSeverity.WARNING,
                metric=AlertMetrics.BUFFER_POOL_HIT_RATE,
                message="Buffer pool hit rate is low, causing excessive disk I/O",
                threshold=T.HIT_RATE_WARNING,
                current_value=hit_rate,
                recommendation=Recommendations.HIT_RATE_WARNING
            ))

        checkpoint = status.log.checkpoint_age_percent
        if checkpoint > T.CHECKPOINT_AGE_CRITICAL:
            alerts.append(HealthAlert(
                severity=AlertSeverity.CRITICAL,
                metric=AlertMetrics.CHECKPOINT_AGE,
                message="Checkpoint age is critically high, risk of write stalls",
                threshold=T.CHECKPOINT_AGE_CRITICAL,
                current_value=checkpoint,
                recommendation=Recommendations.CHECKPOINT_AGE_CRITICAL
            ))
        elif checkpoint > T.CHECKPOINT_AGE_WARNING:
            alerts.append(HealthAlert(
                severity=AlertSeverity.WARNING,
                metric=AlertMetrics.CHECKPOINT_AGE,
                message="Checkpoint age is elevated",
                threshold=T.CHECKPOINT_AGE_WARNING,
                current_value=checkpoint,
                recommendation=Recommendations.CHECKPOINT_AGE_WARNING
            ))

        pending_io = total_pending_io(status)
        if pending_io > T.PENDING_IO_WARNING:
            alerts.append(HealthAlert(
                severity=AlertSeverity.WARNING,
                metric=AlertMetrics.PENDING_IO,
                message="High number of pending I/O operations",
                threshold=T.PENDING_IO_WARNING,
                current_value=pending_io,
                recommendation=Recommendations.PENDING_IO
            ))

        max_wait = max_semaphore_wait(status)
        if max_wait > T.SEMAPHORE_WAIT_CRITICAL:
            alerts.append(HealthAlert(
                severity=AlertSeverity.CRITICAL,
                metric=AlertMetrics.SEMAPHORE_WAIT,
                message="Long semaphore wait detected, indicating severe contention",
                threshold=T.SEMAPHORE_WAIT_CRITICAL,
                current_value=max_wait,
                recommendation=Recommendations.SEMAPHORE_WAIT
            ))

        purge_lag = status.transactions.purge_lag
        if purge_lag > T.PURGE_LAG_WARNING:
            alerts.append(HealthAlert(
                severity=AlertSeverity.WARNING,
                metric=AlertMetrics.PURGE_LAG,
                message="Purge lag is high, purge threads cannot keep up with write rate",
                threshold=T.PURGE_LAG_WARNING,
                current_value=purge_lag,
                recommendation=Recommendations.PURGE_LAG
            ))

        return alerts

    def extended_alerts(self, status: EngineStatus) -> List[HealthAlert]:
        """
        扩展健康检查告警

        不参与评分，也不改变 alerts() 的输出。顺序：脏页比例、活跃事务数、
        互斥量/读写锁争用，均为 warning。
        """
        alerts: List[HealthAlert] = []

        ratio = dirty_page_ratio(status)
        if ratio > T.DIRTY_PAGE_RATIO_WARNING:
            alerts.append(HealthAlert(
                severity=AlertSeverity.WARNING,
                metric=AlertMetrics.DIRTY_PAGE_RATIO,
                message="High dirty page ratio in buffer pool",
                threshold=T.DIRTY_PAGE_RATIO_WARNING,
                current_value=round(ratio, 2),
                recommendation=Recommendations.DIRTY_PAGE_RATIO
            ))

        active = status.transactions.active_transactions
        if active > T.ACTIVE_TRANSACTIONS_WARNING:
            alerts.append(HealthAlert(
                severity=AlertSeverity.WARNING,
                metric=AlertMetrics.ACTIVE_TRANSACTIONS,
                message="High number of active transactions",
                threshold=T.ACTIVE_TRANSACTIONS_WARNING,
                current_value=active,
                recommendation=Recommendations.ACTIVE_TRANSACTIONS
            ))

        os_waits = max(status.semaphores.mutex_os_waits, status.semaphores.rw_lock_os_waits)
        if os_waits > T.MUTEX_OS_WAITS_WARNING:
            alerts.append(HealthAlert(
                severity=AlertSeverity.WARNING,
                metric=AlertMetrics.MUTEX_CONTENTION,
                message="High mutex/rw-lock contention detected",
                threshold=T.MUTEX_OS_WAITS_WARNING,
                current_value=os_waits,
                recommendation=Recommendations.MUTEX_CONTENTION
            ))

        return alerts

    def replication_alerts(self, status: ReplicationStatus) -> List[HealthAlert]:
        """
        生成复制健康告警

        顺序：I/O 线程、SQL 线程、延迟、I/O 错误、SQL 错误、GTID 集合差异。
        延迟为 None 时不产生延迟告警。
        """
        alerts: List[HealthAlert] = []

        if not status.io_thread.running:
            alerts.append(HealthAlert(
                severity=AlertSeverity.CRITICAL,
                metric=AlertMetrics.IO_THREAD_STATUS,
                message="Replication I/O thread is not running",
                current_value="Stopped",
                recommendation=Recommendations.IO_THREAD_STOPPED
            ))

        if not status.sql_thread.running:
            alerts.append(HealthAlert(
                severity=AlertSeverity.CRITICAL,
                metric=AlertMetrics.SQL_THREAD_STATUS,
                message="Replication SQL thread is not running",
                current_value="Stopped",
                recommendation=Recommendations.SQL_THREAD_STOPPED
            ))

        lag = status.lag_seconds
        if lag is not None:
            if lag > T.REPLICATION_LAG_CRITICAL:
                alerts.append(HealthAlert(
                    severity=AlertSeverity.CRITICAL,
                    metric=AlertMetrics.REPLICATION_LAG,
                    message="Replication lag is critically high",
                    threshold=T.REPLICATION_LAG_CRITICAL,
                    current_value=lag,
                    recommendation=Recommendations.LAG_CRITICAL
                ))
            elif lag > T.REPLICATION_LAG_WARNING:
                alerts.append(HealthAlert(
                    severity=AlertSeverity.WARNING,
                    metric=AlertMetrics.REPLICATION_LAG,
                    message="Replication lag is elevated",
                    threshold=T.REPLICATION_LAG_WARNING,
                    current_value=lag,
                    recommendation=Recommendations.LAG_WARNING
                ))

        if status.last_io_error:
            alerts.append(HealthAlert(
                severity=AlertSeverity.CRITICAL,
                metric=AlertMetrics.IO_ERROR,
                message=f"I/O thread error: {status.last_io_error.error_message}",
                current_value=f"Error {status.last_io_error.error_number}",
                recommendation=Recommendations.IO_ERROR
            ))

        if status.last_sql_error:
            alerts.append(HealthAlert(
                severity=AlertSeverity.CRITICAL,
                metric=AlertMetrics.SQL_ERROR,
                message=f"SQL thread error: {status.last_sql_error.error_message}",
                current_value=f"Error {status.last_sql_error.error_number}",
                recommendation=Recommendations.SQL_ERROR
            ))

        if status.replica_type == ReplicaType.GTID and status.gtid_info:
            retrieved = status.gtid_info.retrieved_gtid_set
            executed = status.gtid_info.executed_gtid_set
            if retrieved and executed and retrieved != executed:
                alerts.append(HealthAlert(
                    severity=AlertSeverity.WARNING,
                    metric=AlertMetrics.GTID_GAP,
                    message="GTID sets differ between retrieved and executed",
                    recommendation=Recommendations.GTID_GAP
                ))

        return alerts

    @staticmethod
    def summarize(alerts: List[HealthAlert]) -> Dict[str, int]:
        """按严重级别统计告警数量"""
        summary = {severity.value: 0 for severity in AlertSeverity}
        for alert in alerts:
            summary[alert.severity.value] += 1
        return summary

    @staticmethod
    def highest_severity(alerts: List[HealthAlert]) -> Optional[AlertSeverity]:
        """最高严重级别，无告警时返回 None"""
        if not alerts:
            return None
        return max((alert.severity for alert in alerts), key=lambda s: _SEVERITY_RANK[s])
