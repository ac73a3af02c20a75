"""
原始状态数据源

诊断查询的协作方接口与边界规范化。数据源只负责发出查询并返回原始结果，
不同驱动返回的结果外形不一，在此统一为行字典列表后再交给解析器。

协作方抛出的异常不做包装，原样传给调用方。

@fileoverview 原始状态数据源接口、结果规范化与 asyncmy 实现
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

import asyncmy
from asyncmy.cursors import DictCursor

from config import DatabaseConfig
from constants import StringConstants
from logger import logger
from type_utils import MalformedStatusError, NoStatusDataError, VersionUnavailableError


@runtime_checkable
class StatusSource(Protocol):
    """诊断查询协作方：每次调用发出一条查询并返回原始结果"""

    async def query(self, sql: str) -> Any:
        ...


def normalize_rows(result: Any) -> List[Dict[str, Any]]:
    """
    将驱动结果规范化为行字典列表

    支持的外形：
    - {"rows": [...], ...}
    - [{...}, ...]
    - ([{...}, ...], fields) 二元组

    Raises:
        NoStatusDataError: 结果外形无法识别
    """
    if result is None:
        return []

    if isinstance(result, Mapping) and "rows" in result:
        result = result["rows"]
    elif (
        isinstance(result, tuple)
        and len(result) == 2
        and isinstance(result[0], (list, tuple))
        and all(isinstance(row, Mapping) for row in result[0])
    ):
        result = result[0]

    if isinstance(result, (list, tuple)) and all(isinstance(row, Mapping) for row in result):
        return [dict(row) for row in result]

    logger.error(
        "Unrecognized status result format",
        StringConstants.LOG_CATEGORY_SOURCE,
        metadata={"type": type(result).__name__}
    )
    raise NoStatusDataError(StringConstants.MSG_NO_INNODB_STATUS)


def extract_status_text(rows: List[Dict[str, Any]]) -> str:
    """
    取出第一行的 Status 列文本（列名大小写因驱动而异）

    Raises:
        NoStatusDataError: 没有行
        MalformedStatusError: 第一行没有非空的状态列
    """
    if not rows or not rows[0]:
        raise NoStatusDataError(StringConstants.MSG_NO_INNODB_STATUS)

    row = rows[0]
    for column in StringConstants.STATUS_COLUMNS:
        value = row.get(column)
        if value:
            return value.decode("utf-8", errors="replace") if isinstance(value, bytes) else str(value)

    logger.error(
        StringConstants.MSG_STATUS_COLUMN_MISSING,
        StringConstants.LOG_CATEGORY_SOURCE,
        metadata={"columns": list(row.keys())}
    )
    raise MalformedStatusError(StringConstants.MSG_STATUS_COLUMN_MISSING)


def extract_version(rows: List[Dict[str, Any]]) -> str:
    """
    取出版本查询结果中的版本字符串

    Raises:
        VersionUnavailableError: 没有行或没有版本列
    """
    if rows and rows[0]:
        row = rows[0]
        for column in StringConstants.VERSION_COLUMNS:
            if row.get(column):
                return str(row[column])
    raise VersionUnavailableError(StringConstants.MSG_NO_VERSION)


class AsyncmyStatusSource:
    """
    基于 asyncmy 连接池的状态数据源

    连接池在首次查询时惰性创建，使用 DictCursor 返回行字典。
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig()
        self.pool = None

    async def initialize(self) -> None:
        """创建连接池，可重复调用"""
        if self.pool:
            return

        self.pool = await asyncmy.create_pool(
            host=self.config.host,
            port=self.config.port,
            user=self.config.user,
            password=self.config.password,
            minsize=1,
            maxsize=self.config.pool_max_size,
            connect_timeout=self.config.connect_timeout,
            autocommit=True,
            charset=StringConstants.CHARSET
        )
        logger.info(
            f"Status source pool created for {self.config.host}:{self.config.port}",
            StringConstants.LOG_CATEGORY_SOURCE
        )

    async def query(self, sql: str) -> List[Dict[str, Any]]:
        """执行诊断查询并返回全部行"""
        await self.initialize()
        async with self.pool.acquire() as connection:
            async with connection.cursor(DictCursor) as cursor:
                await cursor.execute(sql)
                return list(await cursor.fetchall())

    async def close(self) -> None:
        """关闭连接池"""
        if self.pool:
            self.pool.close()
            await self.pool.wait_closed()
            self.pool = None

    async def __aenter__(self) -> "AsyncmyStatusSource":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
