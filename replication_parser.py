"""
复制状态解析器

解析 SHOW REPLICA STATUS / SHOW SLAVE STATUS 返回的单行字段，
将新旧两代字段名一次性解析为规范字段，再组装为 ReplicationStatus。

@fileoverview 复制状态解析与健康分类
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from common_utils import NumberUtils, TimeUtils
from constants import DefaultConfig, HealthThresholds, ReplicationFields as F, StringConstants
from logger import logger
from type_utils import (
    BinlogPosition, ConnectedReplica, GTIDInfo, HealthStatus, NoStatusDataError, ReplicaType,
    ReplicationError, ReplicationRole, ReplicationStatus, SourceStatus, ThreadStatus
)

Row = Mapping[str, Any]

# MariaDB Using_Gtid 取值中表示启用 GTID 的值
_MARIADB_GTID_MODES = ("current_pos", "slave_pos")


class ReplicationParser:
    """复制状态解析器，无状态"""

    def parse(self, row_or_rows: Union[Row, Sequence[Row]], version: str) -> ReplicationStatus:
        """
        解析复制状态

        Args:
            row_or_rows: 单行字典或行列表（取第一行）
            version: 服务器版本字符串

        Returns:
            ReplicationStatus

        Raises:
            NoStatusDataError: 未返回任何行
        """
        row = self._first_row(row_or_rows)
        fields, sources = self.resolve_fields(row)

        io_thread = self._thread_status(
            fields.get("io_running"), fields.get("io_state"),
            row.get(F.LAST_IO_ERRNO), row.get(F.LAST_IO_ERROR), row.get(F.LAST_IO_ERROR_TIMESTAMP)
        )
        sql_thread = self._thread_status(
            fields.get("sql_running"), fields.get("sql_state"),
            row.get(F.LAST_SQL_ERRNO), row.get(F.LAST_SQL_ERROR), row.get(F.LAST_SQL_ERROR_TIMESTAMP)
        )

        last_io_error = self._parse_error(
            row.get(F.LAST_IO_ERRNO), row.get(F.LAST_IO_ERROR), row.get(F.LAST_IO_ERROR_TIMESTAMP), "io"
        )
        last_sql_error = self._parse_error(
            row.get(F.LAST_SQL_ERRNO), row.get(F.LAST_SQL_ERROR), row.get(F.LAST_SQL_ERROR_TIMESTAMP), "sql"
        )

        lag_seconds = self.parse_lag(fields.get("lag_seconds"))
        gtid_mode = self.detect_gtid_mode(row)

        status = ReplicationStatus(
            version=version,
            replica_type=ReplicaType.GTID if gtid_mode else ReplicaType.BINLOG,
            master_host=self._text(fields.get("source_host")),
            master_port=self._field_int(fields.get("source_port"), "source_port"),
            master_user=self._text(fields.get("source_user")),
            io_thread=io_thread,
            sql_thread=sql_thread,
            lag_seconds=lag_seconds,
            binlog_position=BinlogPosition(
                source_log_file=self._text(fields.get("source_log_file")),
                read_source_log_pos=self._field_int(fields.get("read_source_log_pos"), "read_source_log_pos"),
                relay_log_file=self._text(row.get(F.RELAY_LOG_FILE)),
                relay_log_pos=self._field_int(row.get(F.RELAY_LOG_POS), F.RELAY_LOG_POS),
                relay_source_log_file=self._text(fields.get("relay_source_log_file")),
                exec_source_log_pos=self._field_int(fields.get("exec_source_log_pos"), "exec_source_log_pos")
            ),
            gtid_info=self._parse_gtid_info(row) if gtid_mode else None,
            last_io_error=last_io_error,
            last_sql_error=last_sql_error,
            field_sources=sources
        )
        status.health_status = self.classify_health(status)
        return status

    @staticmethod
    def _first_row(row_or_rows: Union[Row, Sequence[Row], None]) -> Row:
        if not row_or_rows:
            raise NoStatusDataError(StringConstants.MSG_NO_REPLICATION_STATUS)

        if isinstance(row_or_rows, Mapping):
            return row_or_rows

        rows = list(row_or_rows)
        if not rows or not rows[0]:
            raise NoStatusDataError(StringConstants.MSG_NO_REPLICATION_STATUS)
        if len(rows) > 1:
            logger.debug(
                "Multiple replication channels returned, using the first",
                StringConstants.LOG_CATEGORY_REPLICATION,
                {"channels": len(rows)}
            )
        return rows[0]

    @staticmethod
    def resolve_fields(row: Row) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """
        按 (新名称, 旧名称) 对表解析规范字段

        两者同时存在时取新名称；都不存在时该规范字段缺席。

        Returns:
            (规范字段值, 规范字段来源) 二元组，来源为 "modern" 或 "legacy"
        """
        values: Dict[str, Any] = {}
        sources: Dict[str, str] = {}
        for canonical, modern, legacy in F.FIELD_PAIRS:
            if modern in row:
                values[canonical] = row[modern]
                sources[canonical] = "modern"
            elif legacy in row:
                values[canonical] = row[legacy]
                sources[canonical] = "legacy"
        return values, sources

    @staticmethod
    def parse_lag(value: Any) -> Optional[int]:
        """解析延迟秒数，字面量 NULL、空值或缺席时为 None（与 0 严格区分）"""
        if value is None:
            return None
        text = str(value).strip()
        if not text or text.upper() == F.NULL_LITERAL:
            return None
        try:
            return NumberUtils.parse_int(text)
        except (ValueError, OverflowError):
            logger.debug(
                "Unparsable replication lag, treating as unknown",
                StringConstants.LOG_CATEGORY_REPLICATION,
                {"value": text}
            )
            return None

    @staticmethod
    def detect_gtid_mode(row: Row) -> bool:
        """任一 GTID 集合非空或启用自动定位即视为 GTID 模式"""
        if row.get(F.RETRIEVED_GTID_SET) or row.get(F.EXECUTED_GTID_SET):
            return True
        if str(row.get(F.AUTO_POSITION, "")).strip() == "1":
            return True
        return str(row.get(F.USING_GTID, "")).strip().lower() in _MARIADB_GTID_MODES

    @staticmethod
    def classify_health(status: ReplicationStatus) -> HealthStatus:
        """
        复制健康分类，按顺序首个命中的条件生效：
        线程停止、存在错误或延迟 > 300 为 critical；延迟 > 60 为 warning；
        延迟未知为 unknown；其余为 healthy。
        """
        if not status.io_thread.running or not status.sql_thread.running:
            return HealthStatus.CRITICAL
        if status.last_io_error or status.last_sql_error:
            return HealthStatus.CRITICAL

        lag = status.lag_seconds
        if lag is None:
            return HealthStatus.UNKNOWN
        if lag > HealthThresholds.REPLICATION_LAG_CRITICAL:
            return HealthStatus.CRITICAL
        if lag > HealthThresholds.REPLICATION_LAG_WARNING:
            return HealthStatus.WARNING
        return HealthStatus.HEALTHY

    def parse_source_status(self, rows: Sequence[Row]) -> Optional[SourceStatus]:
        """
        解析 SHOW MASTER STATUS 结果

        没有行表示未启用二进制日志，返回 None。
        """
        if not rows:
            return None
        row = rows[0]
        return SourceStatus(
            file=self._text(row.get(F.SOURCE_FILE)),
            position=self._field_int(row.get(F.SOURCE_POSITION), F.SOURCE_POSITION),
            binlog_do_db=self._text(row.get(F.BINLOG_DO_DB)),
            binlog_ignore_db=self._text(row.get(F.BINLOG_IGNORE_DB)),
            executed_gtid_set=self._text(row.get(F.EXECUTED_GTID_SET)) or None
        )

    def parse_connected_replicas(self, rows: Sequence[Row]) -> List[ConnectedReplica]:
        """解析 SHOW REPLICAS / SHOW SLAVE HOSTS 结果，每行一个副本"""
        replicas = []
        for row in rows:
            values = {}
            for canonical, modern, legacy in F.HOST_FIELD_PAIRS:
                values[canonical] = row[modern] if modern in row else row.get(legacy)
            replicas.append(ConnectedReplica(
                server_id=self._field_int(values["server_id"], "server_id"),
                host=self._text(values["host"]),
                port=self._field_int(values["port"], "port") or DefaultConfig.MYSQL_PORT,
                source_id=self._field_int(values["source_id"], "source_id"),
                replica_uuid=self._text(values["replica_uuid"])
            ))
        return replicas

    @staticmethod
    def classify_role(is_source: bool, is_replica: bool) -> ReplicationRole:
        """同时是源和副本为 both（级联或多源复制）"""
        if is_source and is_replica:
            return ReplicationRole.BOTH
        if is_source:
            return ReplicationRole.MASTER
        if is_replica:
            return ReplicationRole.REPLICA
        return ReplicationRole.STANDALONE

    @staticmethod
    def replication_status_command(version: str) -> str:
        """MariaDB 使用 SHOW SLAVE STATUS，其余先用 SHOW REPLICA STATUS"""
        if StringConstants.MARIADB_MARKER in (version or "").lower():
            return StringConstants.SQL_SLAVE_STATUS
        return StringConstants.SQL_REPLICA_STATUS

    @staticmethod
    def replica_hosts_command(version: str) -> str:
        """MariaDB 使用 SHOW SLAVE HOSTS，其余先用 SHOW REPLICAS"""
        if StringConstants.MARIADB_MARKER in (version or "").lower():
            return StringConstants.SQL_SLAVE_HOSTS
        return StringConstants.SQL_REPLICAS

    @staticmethod
    def replica_terminology(version: str) -> str:
        """复制术语：SLAVE 或 REPLICA"""
        if ReplicationParser.replication_status_command(version) == StringConstants.SQL_SLAVE_STATUS:
            return "SLAVE"
        return "REPLICA"

    @staticmethod
    def _text(value: Any) -> str:
        return "" if value is None else str(value)

    @staticmethod
    def _field_int(value: Any, field: str) -> int:
        """数值字段，缺席或无法解析时为 0"""
        text = ReplicationParser._text(value).strip()
        if not text:
            return 0
        try:
            return NumberUtils.parse_int(text)
        except (ValueError, OverflowError):
            logger.debug(
                "Unparsable replication field, using default",
                StringConstants.LOG_CATEGORY_REPLICATION,
                {"field": field, "value": text}
            )
            return 0

    def _thread_status(
        self,
        running: Any,
        state: Any,
        errno: Any,
        message: Any,
        timestamp: Any
    ) -> ThreadStatus:
        error_number = self._field_int(errno, "errno")
        return ThreadStatus(
            running=self._text(running).strip() == F.RUNNING_YES,
            state=self._text(state) or StringConstants.THREAD_NOT_RUNNING,
            last_error=self._text(message) or None,
            last_error_number=error_number or None,
            last_error_timestamp=TimeUtils.parse_datetime(self._text(timestamp))
        )

    def _parse_error(self, errno: Any, message: Any, timestamp: Any, thread_type: str) -> Optional[ReplicationError]:
        """错误号非零且消息非空才算存在错误"""
        error_number = self._field_int(errno, "errno")
        error_message = self._text(message)
        if not error_number or not error_message:
            return None
        return ReplicationError(
            error_number=error_number,
            error_message=error_message,
            timestamp=TimeUtils.parse_datetime(self._text(timestamp)),
            thread_type=thread_type
        )

    def _parse_gtid_info(self, row: Row) -> GTIDInfo:
        auto_position = self._text(row.get(F.AUTO_POSITION)).strip() == "1"
        return GTIDInfo(
            retrieved_gtid_set=self._text(row.get(F.RETRIEVED_GTID_SET) or row.get(F.GTID_IO_POS)),
            executed_gtid_set=self._text(row.get(F.EXECUTED_GTID_SET)),
            gtid_mode=True,
            auto_position=auto_position
        )

