"""
诊断状态服务 - 管道组合入口

将 缓存 → 数据源 → 解析器 → 评分器 组合为调用方使用的服务对象：

    caller → StatusCache（命中检查）→ StatusSource（未命中时取数）
           → StatusParser / ReplicationParser → HealthScorer → 写入缓存 → 返回

告警与快照对比只依赖已解析的模型，不做 I/O。每个服务实例持有自己的缓存，
缓存的构造、TTL 配置与清理都由服务负责。

@fileoverview InnoDB 与复制诊断服务
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from typing import Any, Callable, List, Optional

from alert_generator import AlertGenerator
from cache import StatusCache
from common_utils import PerformanceUtils
from config import CacheConfig
from constants import StringConstants
from error_handler import ErrorHandler
from health_scorer import HealthScorer
from logger import logger
from replication_parser import ReplicationParser
from snapshot_comparator import SnapshotComparator
from status_parser import StatusParser
from status_source import StatusSource, extract_status_text, extract_version, normalize_rows
from type_utils import (
    ConnectedReplica, EngineStatus, HealthAlert, NoStatusDataError, ReplicationRole,
    ReplicationStatus, SourceStatus, StatusComparison
)


class StatusService:
    """
    诊断状态服务

    Args:
        source: 诊断查询协作方
        cache_config: 缓存 TTL 配置，默认从环境变量读取
        log_capacity: 重做日志总容量（字节），用于计算检查点年龄百分比
        clock: 缓存时钟，测试时注入
    """

    def __init__(
        self,
        source: StatusSource,
        cache_config: Optional[CacheConfig] = None,
        log_capacity: Optional[int] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        cache_config = cache_config or CacheConfig()
        self.source = source
        self.log_capacity = log_capacity
        self.parser = StatusParser()
        self.replication_parser = ReplicationParser()
        self.scorer = HealthScorer()
        self.alert_generator = AlertGenerator()
        self.comparator = SnapshotComparator()
        self.status_cache: StatusCache[EngineStatus] = StatusCache(
            ttl=cache_config.status_cache_ttl, clock=clock, name="InnoDB status"
        )
        self.replication_cache: StatusCache[ReplicationStatus] = StatusCache(
            ttl=cache_config.replication_cache_ttl, clock=clock, name="replication status"
        )

    async def get_engine_status(self, connection_id: str) -> EngineStatus:
        """
        获取引擎状态（带缓存）

        Raises:
            NoStatusDataError: 协作方未返回数据
            MalformedStatusError: 状态列缺失或文本格式不可识别
            VersionUnavailableError: 版本查询无结果
        """
        try:
            return await self.status_cache.get_or_fetch(
                connection_id, lambda: self._fetch_engine_status(connection_id)
            )
        except Exception as e:
            ErrorHandler.log_error(e, {"connection_id": connection_id, "operation": "get_engine_status"})
            raise

    async def _fetch_engine_status(self, connection_id: str) -> EngineStatus:
        timer = PerformanceUtils.create_timer()

        rows = normalize_rows(await self.source.query(StringConstants.SQL_INNODB_STATUS))
        raw_text = extract_status_text(rows)
        version = await self._fetch_version()

        status = self.parser.parse(raw_text, version, self.log_capacity)
        status.health_score = self.scorer.score(status)

        logger.info(
            f"InnoDB status fetched for connection {connection_id}",
            StringConstants.LOG_CATEGORY_SERVICE,
            {
                "connection_id": connection_id,
                "health_score": status.health_score,
                "duration_ms": round(timer['get_elapsed_ms'](), 2)
            }
        )
        return status

    async def get_replication_status(self, connection_id: str) -> ReplicationStatus:
        """
        获取复制状态（带缓存）

        Raises:
            NoStatusDataError: 服务器未配置复制
            VersionUnavailableError: 版本查询无结果
        """
        try:
            return await self.replication_cache.get_or_fetch(
                connection_id, lambda: self._fetch_replication_status(connection_id)
            )
        except Exception as e:
            ErrorHandler.log_error(e, {"connection_id": connection_id, "operation": "get_replication_status"})
            raise

    async def _fetch_replication_status(self, connection_id: str) -> ReplicationStatus:
        version = await self._fetch_version()
        command = self.replication_parser.replication_status_command(version)
        fallback = StringConstants.SQL_SLAVE_STATUS if command == StringConstants.SQL_REPLICA_STATUS else None

        rows = normalize_rows(await self._query_with_fallback(command, fallback, connection_id))
        if not rows:
            raise NoStatusDataError(StringConstants.MSG_NO_REPLICATION_STATUS)

        status = self.replication_parser.parse(rows, version)
        logger.info(
            f"Replication status fetched for connection {connection_id}",
            StringConstants.LOG_CATEGORY_SERVICE,
            {
                "connection_id": connection_id,
                "health_status": status.health_status.value,
                "lag_seconds": status.lag_seconds
            }
        )
        return status

    async def _query_with_fallback(self, command: str, fallback: Optional[str], connection_id: str) -> Any:
        """执行查询，命令因语法错误失败且存在另一代命令名时改用该命令"""
        try:
            return await self.source.query(command)
        except Exception as e:
            if fallback is None or not ErrorHandler.is_syntax_error(e):
                raise
            logger.debug(
                f"{command} failed, falling back to {fallback}",
                StringConstants.LOG_CATEGORY_SERVICE,
                {"connection_id": connection_id}
            )
            return await self.source.query(fallback)

    async def get_source_status(self, connection_id: str) -> Optional[SourceStatus]:
        """
        获取本服务器作为复制源的二进制日志坐标（不缓存）

        Returns:
            SourceStatus，未启用二进制日志时为 None
        """
        try:
            result = await self._query_with_fallback(
                StringConstants.SQL_SOURCE_STATUS, StringConstants.SQL_BINARY_LOG_STATUS, connection_id
            )
            return self.replication_parser.parse_source_status(normalize_rows(result))
        except Exception as e:
            ErrorHandler.log_error(e, {"connection_id": connection_id, "operation": "get_source_status"})
            raise

    async def get_connected_replicas(self, connection_id: str) -> List[ConnectedReplica]:
        """获取已向本服务器注册的副本列表（不缓存）"""
        try:
            version = await self._fetch_version()
            command = self.replication_parser.replica_hosts_command(version)
            fallback = StringConstants.SQL_SLAVE_HOSTS if command == StringConstants.SQL_REPLICAS else None
            result = await self._query_with_fallback(command, fallback, connection_id)
            return self.replication_parser.parse_connected_replicas(normalize_rows(result))
        except Exception as e:
            ErrorHandler.log_error(e, {"connection_id": connection_id, "operation": "get_connected_replicas"})
            raise

    async def get_replication_role(self, connection_id: str) -> ReplicationRole:
        """
        判定复制角色

        源状态有结果即为源；复制状态查询无数据即不是副本，其余错误向上传播。
        """
        is_source = await self.get_source_status(connection_id) is not None
        try:
            await self.get_replication_status(connection_id)
            is_replica = True
        except NoStatusDataError:
            is_replica = False
        return self.replication_parser.classify_role(is_source, is_replica)

    async def _fetch_version(self) -> str:
        return extract_version(normalize_rows(await self.source.query(StringConstants.SQL_VERSION)))

    def get_health_alerts(self, status: EngineStatus) -> List[HealthAlert]:
        """引擎健康告警"""
        return self.alert_generator.alerts(status)

    def get_extended_alerts(self, status: EngineStatus) -> List[HealthAlert]:
        """扩展健康检查告警（脏页比例、活跃事务、锁争用）"""
        return self.alert_generator.extended_alerts(status)

    def get_replication_alerts(self, status: ReplicationStatus) -> List[HealthAlert]:
        """复制健康告警"""
        return self.alert_generator.replication_alerts(status)

    def compare_snapshots(self, before: EngineStatus, after: EngineStatus) -> StatusComparison:
        """对比两个引擎状态快照"""
        return self.comparator.compare(before, after)

    async def clear_cache(self, connection_id: str) -> None:
        """清除单个连接的引擎与复制状态缓存"""
        await self.status_cache.invalidate(connection_id)
        await self.replication_cache.invalidate(connection_id)

    async def clear_all_caches(self) -> None:
        """清除全部缓存"""
        await self.status_cache.invalidate_all()
        await self.replication_cache.invalidate_all()
