"""
InnoDB 诊断常量 - 中央配置管理

诊断管道使用的全部固定字面量：默认配置、引擎状态段落标题、健康阈值与扣分、
告警建议文本、复制状态字段名以及错误消息。阈值与扣分是对外契约，
修改任何数值都会改变评分与告警行为。

@fileoverview InnoDB 诊断常量 - 阈值、段落标题、字段名与消息模板
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from typing import Final, Tuple


class DefaultConfig:
    """
    默认配置常量

    系统各组件的默认配置值集合，均可通过环境变量覆盖。

    配置分类：
    - 数据库连接：状态查询所用的 MySQL 连接参数
    - 缓存参数：状态缓存的生存时间
    - 日志配置：日志级别与格式
    """

    # MySQL连接配置
    MYSQL_PORT: Final[int] = 3306                        # 标准MySQL端口
    CONNECT_TIMEOUT: Final[int] = 10                     # 连接超时（秒）
    POOL_MAX_SIZE: Final[int] = 4                        # 状态查询连接池大小

    # 缓存配置
    STATUS_CACHE_TTL: Final[float] = 30.0                # 引擎状态缓存TTL（秒）
    REPLICATION_CACHE_TTL: Final[float] = 30.0           # 复制状态缓存TTL（秒）

    # 解析配置
    PAGE_SIZE_BYTES: Final[int] = 16384                  # InnoDB默认页大小，用于字节换算页数

    # 日志配置
    LOG_LEVEL: Final[str] = "info"
    LOG_FORMAT: Final[str] = "pretty"


class HealthThresholds:
    """
    健康评分与告警阈值

    评分器与告警生成器共用同一组阈值，保证严重级别与扣分档位一致。
    每个指标最多命中一个档位。
    """

    # 事务历史列表长度
    HISTORY_LIST_CRITICAL: Final[int] = 1_000_000
    HISTORY_LIST_WARNING: Final[int] = 100_000
    HISTORY_LIST_CRITICAL_PENALTY: Final[int] = 30
    HISTORY_LIST_WARNING_PENALTY: Final[int] = 15

    # 缓冲池命中率（百分比，低于阈值触发）
    HIT_RATE_CRITICAL: Final[float] = 90.0
    HIT_RATE_WARNING: Final[float] = 95.0
    HIT_RATE_CRITICAL_PENALTY: Final[int] = 25
    HIT_RATE_WARNING_PENALTY: Final[int] = 10

    # 检查点年龄（占日志容量百分比）
    CHECKPOINT_AGE_CRITICAL: Final[float] = 85.0
    CHECKPOINT_AGE_WARNING: Final[float] = 70.0
    CHECKPOINT_AGE_CRITICAL_PENALTY: Final[int] = 20
    CHECKPOINT_AGE_WARNING_PENALTY: Final[int] = 10

    # 挂起I/O（读+写）
    PENDING_IO_WARNING: Final[int] = 100
    PENDING_IO_PENALTY: Final[int] = 15

    # 信号量长等待（秒）
    SEMAPHORE_WAIT_CRITICAL: Final[float] = 240.0
    SEMAPHORE_WAIT_PENALTY: Final[int] = 25

    # 清除滞后（undo记录数）
    PURGE_LAG_WARNING: Final[int] = 1_000_000
    PURGE_LAG_PENALTY: Final[int] = 10

    # 扩展检查（只产生告警，不参与评分）
    DIRTY_PAGE_RATIO_WARNING: Final[float] = 75.0       # 脏页占数据页百分比
    ACTIVE_TRANSACTIONS_WARNING: Final[int] = 1000
    MUTEX_OS_WAITS_WARNING: Final[int] = 1_000_000      # 互斥量或读写锁 OS 等待次数

    # 复制延迟（秒）
    REPLICATION_LAG_CRITICAL: Final[int] = 300
    REPLICATION_LAG_WARNING: Final[int] = 60

    # 快照对比显著变化判定
    SIGNIFICANT_CHANGE_PERCENT: Final[float] = 10.0
    SIGNIFICANT_CHANGE_ABSOLUTE: Final[float] = 5.0

    MAX_SCORE: Final[int] = 100
    MIN_SCORE: Final[int] = 0


class AlertMetrics:
    """告警指标稳定标识符（按输出顺序排列）"""

    TRANSACTION_HISTORY_LENGTH: Final[str] = "transaction_history_length"
    BUFFER_POOL_HIT_RATE: Final[str] = "buffer_pool_hit_rate"
    CHECKPOINT_AGE: Final[str] = "checkpoint_age"
    PENDING_IO: Final[str] = "pending_io"
    SEMAPHORE_WAIT: Final[str] = "semaphore_wait"
    PURGE_LAG: Final[str] = "purge_lag"

    # 复制告警
    IO_THREAD_STATUS: Final[str] = "io_thread_status"
    SQL_THREAD_STATUS: Final[str] = "sql_thread_status"
    REPLICATION_LAG: Final[str] = "replication_lag"
    IO_ERROR: Final[str] = "io_error"
    SQL_ERROR: Final[str] = "sql_error"
    GTID_GAP: Final[str] = "gtid_gap"

    # 扩展检查
    DIRTY_PAGE_RATIO: Final[str] = "dirty_page_ratio"
    ACTIVE_TRANSACTIONS: Final[str] = "active_transactions"
    MUTEX_CONTENTION: Final[str] = "mutex_contention"


class Recommendations:
    """
    告警修复建议

    静态查找文本，按指标与严重级别区分，不做任何计算。
    """

    HISTORY_LIST_CRITICAL: Final[str] = (
        "Long-running transactions are preventing purge. Identify and commit/rollback old "
        "transactions. Consider increasing innodb_purge_threads."
    )
    HISTORY_LIST_WARNING: Final[str] = (
        "Monitor for long-running transactions that may be preventing purge operations."
    )
    HIT_RATE_CRITICAL: Final[str] = (
        "Increase innodb_buffer_pool_size to 70-80% of available RAM. Current buffer pool may "
        "be severely undersized for workload."
    )
    HIT_RATE_WARNING: Final[str] = (
        "Consider increasing innodb_buffer_pool_size to reduce disk I/O. Monitor trend over "
        "time to determine if increase is warranted."
    )
    CHECKPOINT_AGE_CRITICAL: Final[str] = (
        "Increase innodb_log_file_size or tune innodb_io_capacity for faster flushing. "
        "Requires server restart."
    )
    CHECKPOINT_AGE_WARNING: Final[str] = (
        "Monitor checkpoint age. May need to increase innodb_log_file_size if trend continues."
    )
    PENDING_IO: Final[str] = (
        "Check disk I/O performance. May need faster storage or increased innodb_io_capacity."
    )
    SEMAPHORE_WAIT: Final[str] = (
        "Check for buffer pool contention or disk I/O bottlenecks. Consider disabling adaptive "
        "hash index or increasing buffer pool instances."
    )
    PURGE_LAG: Final[str] = (
        "Increase innodb_purge_threads. Verify no extremely long-running transactions "
        "blocking purge."
    )

    IO_THREAD_STOPPED: Final[str] = (
        "Check the last I/O error and network connectivity to the source. Restart the I/O "
        "thread once the cause is fixed."
    )
    SQL_THREAD_STOPPED: Final[str] = (
        "Check the last SQL error. May need to skip the error or fix data inconsistency "
        "before restarting the SQL thread."
    )
    LAG_CRITICAL: Final[str] = (
        "Check for slow queries on replica, network issues, or high write load on source. "
        "Consider parallel replication."
    )
    LAG_WARNING: Final[str] = (
        "Monitor lag trend. May indicate slow queries or high load. Review the parallel "
        "worker setting."
    )
    IO_ERROR: Final[str] = (
        "Check network connectivity, source server status, and replication user privileges."
    )
    SQL_ERROR: Final[str] = (
        "Check for data inconsistencies, duplicate keys, or missing tables. May need to skip "
        "the error or resync data."
    )
    GTID_GAP: Final[str] = (
        "Monitor for GTID gaps. May indicate SQL thread is behind I/O thread."
    )

    DIRTY_PAGE_RATIO: Final[str] = (
        "Increase innodb_io_capacity and innodb_io_capacity_max to speed up flushing. "
        "Check the innodb_max_dirty_pages_pct setting."
    )
    ACTIVE_TRANSACTIONS: Final[str] = (
        "Review application transaction patterns. High concurrency may call for connection "
        "pooling or application-level batching."
    )
    MUTEX_CONTENTION: Final[str] = (
        "Consider increasing innodb_buffer_pool_instances, disabling innodb_adaptive_hash_index, "
        "or reviewing query patterns for hotspot tables."
    )


class SectionHeaders:
    """
    SHOW ENGINE INNODB STATUS 段落标题

    标题行在输出中由上下两行短横线包围，这里保存标题文本本身。
    """

    BACKGROUND_THREAD: Final[str] = "BACKGROUND THREAD"
    SEMAPHORES: Final[str] = "SEMAPHORES"
    LATEST_DETECTED_DEADLOCK: Final[str] = "LATEST DETECTED DEADLOCK"
    LATEST_FOREIGN_KEY_ERROR: Final[str] = "LATEST FOREIGN KEY ERROR"
    TRANSACTIONS: Final[str] = "TRANSACTIONS"
    FILE_IO: Final[str] = "FILE I/O"
    INSERT_BUFFER: Final[str] = "INSERT BUFFER AND ADAPTIVE HASH INDEX"
    LOG: Final[str] = "LOG"
    BUFFER_POOL: Final[str] = "BUFFER POOL AND MEMORY"
    INDIVIDUAL_BUFFER_POOL: Final[str] = "INDIVIDUAL BUFFER POOL INFO"
    ROW_OPERATIONS: Final[str] = "ROW OPERATIONS"

    KNOWN: Final[Tuple[str, ...]] = (
        BACKGROUND_THREAD,
        SEMAPHORES,
        LATEST_DETECTED_DEADLOCK,
        LATEST_FOREIGN_KEY_ERROR,
        TRANSACTIONS,
        FILE_IO,
        INSERT_BUFFER,
        LOG,
        BUFFER_POOL,
        INDIVIDUAL_BUFFER_POOL,
        ROW_OPERATIONS,
    )


class ReplicationFields:
    """
    复制状态字段名

    FIELD_PAIRS 为 (新名称, 旧名称) 有序列表，解析时一次性解析为规范字段，
    两者同时存在时优先新名称。新名称自 MySQL 8.0.22 起使用。
    """

    FIELD_PAIRS: Final[Tuple[Tuple[str, str, str], ...]] = (
        # (规范字段, 新名称, 旧名称)
        ("source_host", "Source_Host", "Master_Host"),
        ("source_port", "Source_Port", "Master_Port"),
        ("source_user", "Source_User", "Master_User"),
        ("io_running", "Replica_IO_Running", "Slave_IO_Running"),
        ("sql_running", "Replica_SQL_Running", "Slave_SQL_Running"),
        ("io_state", "Replica_IO_State", "Slave_IO_State"),
        ("sql_state", "Replica_SQL_Running_State", "Slave_SQL_Running_State"),
        ("lag_seconds", "Seconds_Behind_Source", "Seconds_Behind_Master"),
        ("source_log_file", "Source_Log_File", "Master_Log_File"),
        ("read_source_log_pos", "Read_Source_Log_Pos", "Read_Master_Log_Pos"),
        ("relay_source_log_file", "Relay_Source_Log_File", "Relay_Master_Log_File"),
        ("exec_source_log_pos", "Exec_Source_Log_Pos", "Exec_Master_Log_Pos"),
    )

    # 两代命名一致的字段
    RELAY_LOG_FILE: Final[str] = "Relay_Log_File"
    RELAY_LOG_POS: Final[str] = "Relay_Log_Pos"
    LAST_IO_ERRNO: Final[str] = "Last_IO_Errno"
    LAST_IO_ERROR: Final[str] = "Last_IO_Error"
    LAST_IO_ERROR_TIMESTAMP: Final[str] = "Last_IO_Error_Timestamp"
    LAST_SQL_ERRNO: Final[str] = "Last_SQL_Errno"
    LAST_SQL_ERROR: Final[str] = "Last_SQL_Error"
    LAST_SQL_ERROR_TIMESTAMP: Final[str] = "Last_SQL_Error_Timestamp"
    RETRIEVED_GTID_SET: Final[str] = "Retrieved_Gtid_Set"
    EXECUTED_GTID_SET: Final[str] = "Executed_Gtid_Set"
    AUTO_POSITION: Final[str] = "Auto_Position"
    # MariaDB 的 GTID 字段
    USING_GTID: Final[str] = "Using_Gtid"
    GTID_IO_POS: Final[str] = "Gtid_IO_Pos"

    # SHOW MASTER STATUS / SHOW BINARY LOG STATUS 列
    SOURCE_FILE: Final[str] = "File"
    SOURCE_POSITION: Final[str] = "Position"
    BINLOG_DO_DB: Final[str] = "Binlog_Do_DB"
    BINLOG_IGNORE_DB: Final[str] = "Binlog_Ignore_DB"

    # SHOW REPLICAS / SHOW SLAVE HOSTS 列，(规范字段, 新名称, 旧名称)
    HOST_FIELD_PAIRS: Final[Tuple[Tuple[str, str, str], ...]] = (
        ("server_id", "Server_Id", "Server_id"),
        ("host", "Host", "Host"),
        ("port", "Port", "Port"),
        ("source_id", "Source_Id", "Master_id"),
        ("replica_uuid", "Replica_UUID", "Slave_UUID"),
    )

    RUNNING_YES: Final[str] = "Yes"
    NULL_LITERAL: Final[str] = "NULL"


class StringConstants:
    """
    字符串常量

    SQL 语句、环境变量键与错误消息模板。
    """

    # 诊断查询
    SQL_INNODB_STATUS: Final[str] = "SHOW ENGINE INNODB STATUS"
    SQL_VERSION: Final[str] = "SELECT VERSION() AS version"
    SQL_REPLICA_STATUS: Final[str] = "SHOW REPLICA STATUS"
    SQL_SLAVE_STATUS: Final[str] = "SHOW SLAVE STATUS"
    SQL_SOURCE_STATUS: Final[str] = "SHOW MASTER STATUS"
    SQL_BINARY_LOG_STATUS: Final[str] = "SHOW BINARY LOG STATUS"   # MySQL 8.2 起的新名称
    SQL_SLAVE_HOSTS: Final[str] = "SHOW SLAVE HOSTS"
    SQL_REPLICAS: Final[str] = "SHOW REPLICAS"

    # 结果列名（不同驱动大小写不一）
    STATUS_COLUMNS: Final[Tuple[str, ...]] = ("Status", "STATUS", "status")
    VERSION_COLUMNS: Final[Tuple[str, ...]] = ("version", "VERSION", "VERSION()", "Version")

    MARIADB_MARKER: Final[str] = "mariadb"
    SYNTAX_ERROR_MARKER: Final[str] = "syntax"

    # 默认值
    DEFAULT_HOST: Final[str] = "localhost"
    DEFAULT_USER: Final[str] = "root"
    DEFAULT_PASSWORD: Final[str] = ""
    CHARSET: Final[str] = "utf8mb4"
    THREAD_NOT_RUNNING: Final[str] = "Not running"

    # 环境变量键
    ENV_MYSQL_HOST: Final[str] = "MYSQL_HOST"
    ENV_MYSQL_PORT: Final[str] = "MYSQL_PORT"
    ENV_MYSQL_USER: Final[str] = "MYSQL_USER"
    ENV_MYSQL_PASSWORD: Final[str] = "MYSQL_PASSWORD"
    ENV_CONNECT_TIMEOUT: Final[str] = "MYSQL_CONNECT_TIMEOUT"
    ENV_STATUS_CACHE_TTL: Final[str] = "STATUS_CACHE_TTL"
    ENV_REPLICATION_CACHE_TTL: Final[str] = "REPLICATION_CACHE_TTL"
    ENV_LOG_LEVEL: Final[str] = "DIAGNOSTICS_LOG_LEVEL"
    ENV_LOG_FORMAT: Final[str] = "DIAGNOSTICS_LOG_FORMAT"

    # 错误消息
    MSG_NO_INNODB_STATUS: Final[str] = "No InnoDB status data returned"
    MSG_NO_REPLICATION_STATUS: Final[str] = "No replication status data returned"
    MSG_STATUS_COLUMN_MISSING: Final[str] = "Invalid InnoDB status format - Status column not found"
    MSG_EMPTY_STATUS: Final[str] = "Malformed status format - empty status text"
    MSG_NO_SECTIONS: Final[str] = "Malformed status format - no recognized section headers found"
    MSG_NO_VERSION: Final[str] = "Server version unavailable - version query returned no rows"

    # 日志分类
    LOG_CATEGORY_PARSER: Final[str] = "StatusParser"
    LOG_CATEGORY_REPLICATION: Final[str] = "ReplicationParser"
    LOG_CATEGORY_SCORER: Final[str] = "HealthScorer"
    LOG_CATEGORY_CACHE: Final[str] = "StatusCache"
    LOG_CATEGORY_SERVICE: Final[str] = "StatusService"
    LOG_CATEGORY_SOURCE: Final[str] = "StatusSource"
