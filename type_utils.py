"""
统一类型定义系统 - InnoDB 诊断类型管理

诊断管道的全部类型定义：错误分类与异常层次、引擎状态领域模型、
健康告警、快照对比结果以及复制状态模型。所有模型基于 pydantic，
可通过 model_dump(mode="json") 序列化为 JSON 兼容字典并用 model_validate 还原。

@fileoverview 统一类型定义系统 - 错误、引擎状态与复制状态模型
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime


# =============================================================================
# 错误处理相关类型定义
# =============================================================================

class ErrorSeverity(str, Enum):
    """错误严重级别"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """错误分类枚举"""
    NO_DATA = "no_data"
    MALFORMED_STATUS = "malformed_status"
    VERSION_UNAVAILABLE = "version_unavailable"
    PARSE_GAP = "parse_gap"
    COLLABORATOR_ERROR = "collaborator_error"
    UNKNOWN = "unknown"


class DiagnosticsError(Exception):
    """诊断管道错误基类"""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.original_error = original_error
        self.timestamp = datetime.now()


class NoStatusDataError(DiagnosticsError):
    """状态查询未返回任何数据"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, ErrorCategory.NO_DATA, ErrorSeverity.HIGH, original_error)


class MalformedStatusError(DiagnosticsError):
    """状态文本为空、缺少必需标记或结果缺少状态列"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, ErrorCategory.MALFORMED_STATUS, ErrorSeverity.HIGH, original_error)


class VersionUnavailableError(DiagnosticsError):
    """版本查询未返回可用行"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, ErrorCategory.VERSION_UNAVAILABLE, ErrorSeverity.MEDIUM, original_error)


# =============================================================================
# 引擎状态领域模型
# =============================================================================

class TransactionStates(BaseModel):
    """各状态事务计数"""
    active: int = 0
    prepared: int = 0
    committed: int = 0


class TransactionSection(BaseModel):
    """TRANSACTIONS 段落"""
    history_list_length: int = 0
    active_transactions: int = 0
    purge_lag: int = 0
    oldest_active_transaction_age: int = 0  # 秒
    trx_id_counter: int = 0
    transaction_states: TransactionStates = Field(default_factory=TransactionStates)


class LockInfo(BaseModel):
    """死锁中的锁信息"""
    table: str = ""
    index: Optional[str] = None
    lock_mode: str = ""
    lock_type: str = ""


class DeadlockTransaction(BaseModel):
    """死锁参与事务，id 为输出中的 (n) 序号"""
    id: str
    transaction_id: str = ""
    thread_id: int = 0
    query: str = ""
    locks_held: List[LockInfo] = Field(default_factory=list)
    locks_waiting: List[LockInfo] = Field(default_factory=list)


class DeadlockInfo(BaseModel):
    """最近一次死锁"""
    timestamp: Optional[datetime] = None
    transactions: List[DeadlockTransaction] = Field(default_factory=list)
    victim: str = ""

    @property
    def victim_transaction(self) -> Optional[DeadlockTransaction]:
        """将回滚标记中的序号映射回对应事务"""
        for transaction in self.transactions:
            if transaction.id == self.victim:
                return transaction
        return None


class DeadlockSection(BaseModel):
    """LATEST DETECTED DEADLOCK 段落"""
    latest_deadlock: Optional[DeadlockInfo] = None
    deadlock_count: int = 0


class BufferPoolSection(BaseModel):
    """BUFFER POOL AND MEMORY 段落（大小单位为页）"""
    total_size: int = 0
    free_pages: int = 0
    database_pages: int = 0
    dirty_pages: int = 0
    modified_db_pages: int = 0
    hit_rate: float = 0.0  # 百分比
    reads_from_disk: float = 0.0
    pending_reads: int = 0
    pending_writes: int = 0
    lru_list_length: int = 0
    flush_list_length: int = 0
    pages_read: int = 0
    pages_created: int = 0
    pages_written: int = 0


class IOThreadInfo(BaseModel):
    """I/O 线程状态"""
    id: int
    type: str
    state: str


class IOSection(BaseModel):
    """FILE I/O 段落"""
    pending_reads: int = 0
    pending_writes: int = 0
    pending_fsyncs: int = 0
    reads_per_second: float = 0.0
    writes_per_second: float = 0.0
    fsyncs_per_second: float = 0.0
    os_file_reads: int = 0
    os_file_writes: int = 0
    os_fsyncs: int = 0
    io_threads: List[IOThreadInfo] = Field(default_factory=list)


class InsertBufferSection(BaseModel):
    """插入缓冲（change buffer）"""
    size: int = 0
    free_list_length: int = 0
    segment_size: int = 0
    merges: int = 0
    merged_operations: Dict[str, int] = Field(default_factory=dict)
    discarded_operations: Dict[str, int] = Field(default_factory=dict)


class AdaptiveHashIndexSection(BaseModel):
    """自适应哈希索引"""
    hash_table_size: int = 0
    node_heap_buffers: int = 0
    hash_searches_per_second: float = 0.0
    non_hash_searches_per_second: float = 0.0


class LogSection(BaseModel):
    """LOG 段落（重做日志）"""
    log_sequence_number: int = 0
    log_flushed_up_to: int = 0
    pages_flushed_up_to: int = 0
    last_checkpoint_lsn: int = 0
    checkpoint_age: int = 0
    max_checkpoint_age: int = 0
    checkpoint_age_percent: float = 0.0
    pending_log_writes: int = 0
    pending_checkpoint_writes: int = 0
    log_io_per_second: float = 0.0


class RowOperationsSection(BaseModel):
    """ROW OPERATIONS 段落"""
    rows_inserted: int = 0
    rows_updated: int = 0
    rows_deleted: int = 0
    rows_read: int = 0
    inserts_per_second: float = 0.0
    updates_per_second: float = 0.0
    deletes_per_second: float = 0.0
    reads_per_second: float = 0.0
    queries_inside: int = 0
    queries_queued: int = 0
    read_views_open: int = 0


class SemaphoreWait(BaseModel):
    """信号量长等待记录"""
    thread_id: int = 0
    wait_time: float = 0.0  # 秒
    wait_type: str = ""
    location: str = ""


class SemaphoreSection(BaseModel):
    """SEMAPHORES 段落"""
    reservation_count: int = 0
    signal_count: int = 0
    mutex_waits: int = 0
    mutex_spin_rounds: int = 0
    mutex_os_waits: int = 0
    rw_lock_waits: int = 0
    rw_lock_spin_rounds: int = 0
    rw_lock_os_waits: int = 0
    long_semaphore_waits: List[SemaphoreWait] = Field(default_factory=list)


class EngineStatus(BaseModel):
    """
    完整的 InnoDB 引擎状态

    段落缺失时子记录使用零值或空集合默认值。health_score 在构造后由评分器写入，
    赋值时同样校验 [0, 100] 范围。
    """
    model_config = ConfigDict(validate_assignment=True)

    timestamp: datetime = Field(default_factory=datetime.now)
    version: str = ""
    uptime: int = 0  # 秒（每秒平均值的统计窗口）
    transactions: TransactionSection = Field(default_factory=TransactionSection)
    deadlocks: DeadlockSection = Field(default_factory=DeadlockSection)
    buffer_pool: BufferPoolSection = Field(default_factory=BufferPoolSection)
    io: IOSection = Field(default_factory=IOSection)
    insert_buffer: InsertBufferSection = Field(default_factory=InsertBufferSection)
    adaptive_hash_index: AdaptiveHashIndexSection = Field(default_factory=AdaptiveHashIndexSection)
    log: LogSection = Field(default_factory=LogSection)
    row_operations: RowOperationsSection = Field(default_factory=RowOperationsSection)
    semaphores: SemaphoreSection = Field(default_factory=SemaphoreSection)
    health_score: int = Field(default=0, ge=0, le=100)


# =============================================================================
# 告警与对比类型
# =============================================================================

class AlertSeverity(str, Enum):
    """告警严重级别"""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class HealthAlert(BaseModel):
    """健康告警"""
    severity: AlertSeverity
    metric: str
    message: str
    threshold: Optional[float] = None
    current_value: Optional[Any] = None
    recommendation: Optional[str] = None


class MetricDelta(BaseModel):
    """单个指标的变化量"""
    metric: str
    before: float
    after: float
    change: float
    change_percent: float


class StatusComparison(BaseModel):
    """两个引擎状态快照的对比结果"""
    before: EngineStatus
    after: EngineStatus
    deltas: List[MetricDelta] = Field(default_factory=list)
    significant_changes: List[str] = Field(default_factory=list)


# =============================================================================
# 复制状态模型
# =============================================================================

class HealthStatus(str, Enum):
    """复制健康状态"""
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


class ReplicaType(str, Enum):
    """复制定位方式"""
    GTID = "gtid"
    BINLOG = "binlog"


class ThreadStatus(BaseModel):
    """I/O 或 SQL 线程状态"""
    running: bool = False
    state: str = ""
    last_error: Optional[str] = None
    last_error_number: Optional[int] = None
    last_error_timestamp: Optional[datetime] = None


class ReplicationError(BaseModel):
    """复制线程错误"""
    error_number: int
    error_message: str
    timestamp: Optional[datetime] = None
    thread_type: str  # 'io' | 'sql'


class GTIDInfo(BaseModel):
    """GTID 信息"""
    retrieved_gtid_set: str = ""
    executed_gtid_set: str = ""
    gtid_mode: bool = False
    auto_position: bool = False


class BinlogPosition(BaseModel):
    """二进制日志与中继日志坐标"""
    source_log_file: str = ""
    read_source_log_pos: int = 0
    relay_log_file: str = ""
    relay_log_pos: int = 0
    relay_source_log_file: str = ""
    exec_source_log_pos: int = 0


class ReplicationStatus(BaseModel):
    """
    复制状态

    lag_seconds 为 None 表示延迟无法确定，与 0（完全追上）严格区分。
    field_sources 记录每个规范字段来自新名称（modern）还是旧名称（legacy）。
    """
    timestamp: datetime = Field(default_factory=datetime.now)
    version: str = ""
    replica_type: ReplicaType = ReplicaType.BINLOG
    master_host: str = ""
    master_port: int = 0
    master_user: str = ""
    io_thread: ThreadStatus = Field(default_factory=ThreadStatus)
    sql_thread: ThreadStatus = Field(default_factory=ThreadStatus)
    lag_seconds: Optional[int] = None
    binlog_position: BinlogPosition = Field(default_factory=BinlogPosition)
    gtid_info: Optional[GTIDInfo] = None
    last_io_error: Optional[ReplicationError] = None
    last_sql_error: Optional[ReplicationError] = None
    health_status: HealthStatus = HealthStatus.UNKNOWN
    field_sources: Dict[str, str] = Field(default_factory=dict)


# =============================================================================
# 复制拓扑模型
# =============================================================================

class ReplicationRole(str, Enum):
    """服务器在复制拓扑中的角色"""
    MASTER = "master"
    REPLICA = "replica"
    BOTH = "both"
    STANDALONE = "standalone"


class SourceStatus(BaseModel):
    """SHOW MASTER STATUS 返回的二进制日志坐标"""
    file: str = ""
    position: int = 0
    binlog_do_db: str = ""
    binlog_ignore_db: str = ""
    executed_gtid_set: Optional[str] = None


class ConnectedReplica(BaseModel):
    """已向本服务器注册的副本（SHOW SLAVE HOSTS 的一行）"""
    server_id: int = 0
    host: str = ""
    port: int = 3306
    source_id: int = 0
    replica_uuid: str = ""
