"""
InnoDB 诊断库 - 存储引擎与复制状态诊断

解析 SHOW ENGINE INNODB STATUS 与复制状态输出，计算健康分、生成告警，
并支持两个快照之间的对比。

@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

import os

__version__ = "1.0.0"
__author__ = "liyq"
__license__ = "MIT"

# 只在非测试环境下导入模块
if os.environ.get('TESTING') != 'true':
    from config import ConfigurationManager, CacheConfig, DatabaseConfig
    from cache import StatusCache
    from status_parser import StatusParser
    from replication_parser import ReplicationParser
    from health_scorer import HealthScorer
    from alert_generator import AlertGenerator
    from snapshot_comparator import SnapshotComparator
    from status_source import StatusSource, AsyncmyStatusSource
    from status_service import StatusService
    from type_utils import (
        DiagnosticsError, NoStatusDataError, MalformedStatusError, VersionUnavailableError,
        ErrorSeverity, ErrorCategory,
        EngineStatus, HealthAlert, StatusComparison, ReplicationStatus,
        AlertSeverity, HealthStatus, ReplicaType,
        ReplicationRole, SourceStatus, ConnectedReplica
    )
    from constants import StringConstants, DefaultConfig, HealthThresholds

__all__ = [
    # 核心组件
    "StatusService",
    "StatusParser",
    "ReplicationParser",
    "HealthScorer",
    "AlertGenerator",
    "SnapshotComparator",
    "StatusCache",
    "StatusSource",
    "AsyncmyStatusSource",
    "ConfigurationManager",
    "CacheConfig",
    "DatabaseConfig",

    # 类型定义
    "DiagnosticsError",
    "NoStatusDataError",
    "MalformedStatusError",
    "VersionUnavailableError",
    "ErrorSeverity",
    "ErrorCategory",
    "EngineStatus",
    "HealthAlert",
    "StatusComparison",
    "ReplicationStatus",
    "AlertSeverity",
    "HealthStatus",
    "ReplicaType",
    "ReplicationRole",
    "SourceStatus",
    "ConnectedReplica",

    # 常量
    "StringConstants",
    "DefaultConfig",
    "HealthThresholds"
]
