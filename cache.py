"""
状态缓存 - 按连接标识缓存诊断结果

位于 取数 + 解析 + 评分 管道之前的定长 TTL 缓存。每个实例独立持有自己的条目，
生命周期由组合它的服务对象负责，不存在模块级单例。

特性：
- asyncio.Lock 保护全部读写
- 年龄达到 TTL 即视为未命中（now - created_at >= ttl）
- get_or_fetch 按键合并并发未命中：同一键同时只有一个取数任务在途，
  所有调用方等待同一结果；取数失败不缓存，错误传给每个等待方
- 时钟可注入，便于测试过期行为

@fileoverview 诊断状态缓存
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from common_utils import TimeUtils
from constants import DefaultConfig, StringConstants
from logger import logger

T = TypeVar('T')


@dataclass
class CacheEntry(Generic[T]):
    """
    缓存条目

    - data: 缓存的诊断结果
    - created_at: 写入时刻（缓存时钟，秒）
    """
    data: T
    created_at: float


class StatusCache(Generic[T]):
    """
    状态缓存

    键为连接标识，值为解析后的诊断结果（EngineStatus 或 ReplicationStatus）。
    """

    def __init__(
        self,
        ttl: float = DefaultConfig.STATUS_CACHE_TTL,
        clock: Optional[Callable[[], float]] = None,
        name: str = "status"
    ):
        if ttl <= 0:
            raise ValueError(f"TTL必须大于0，当前值: {ttl}")
        self.ttl = ttl
        self.name = name
        self.clock = clock or TimeUtils.now_in_seconds
        self.cache: Dict[str, CacheEntry[T]] = {}
        self.lock = asyncio.Lock()
        self.hit_count = 0
        self.miss_count = 0
        self.coalesced_count = 0
        self._inflight: Dict[str, "asyncio.Task[T]"] = {}

    def _lookup(self, key: str) -> Optional[T]:
        """查找未过期条目并更新统计，调用方须持有锁"""
        entry = self.cache.get(key)
        if entry is None:
            self.miss_count += 1
            return None

        if TimeUtils.is_expired(entry.created_at, self.ttl, self.clock()):
            del self.cache[key]
            self.miss_count += 1
            return None

        self.hit_count += 1
        return entry.data

    async def get(self, key: str) -> Optional[T]:
        """
        获取缓存值

        @param key: 连接标识
        @returns: 未过期的缓存值，否则返回None
        """
        async with self.lock:
            return self._lookup(key)

    async def put(self, key: str, value: T) -> None:
        """写入缓存，覆盖同键旧条目"""
        async with self.lock:
            self.cache[key] = CacheEntry(data=value, created_at=self.clock())

    async def invalidate(self, key: str) -> bool:
        """删除单个键，返回是否存在"""
        async with self.lock:
            return self.cache.pop(key, None) is not None

    async def invalidate_all(self) -> None:
        """清空缓存"""
        async with self.lock:
            self.cache.clear()

    async def get_or_fetch(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """
        读取缓存，未命中时通过 loader 取数并写入

        并发未命中同一键时只会调用一次 loader。

        @param key: 连接标识
        @param loader: 无参异步取数函数
        @returns: 缓存值或新取得的值
        """
        async with self.lock:
            cached = self._lookup(key)
            if cached is not None:
                logger.debug(
                    f"Returning cached {self.name} for connection {key}",
                    StringConstants.LOG_CATEGORY_CACHE
                )
                return cached

            task = self._inflight.get(key)
            if task is None:
                task = asyncio.create_task(self._load(key, loader))
                self._inflight[key] = task
            else:
                self.coalesced_count += 1

        return await asyncio.shield(task)

    async def _load(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        try:
            value = await loader()
        except BaseException:
            async with self.lock:
                self._inflight.pop(key, None)
            raise

        async with self.lock:
            self.cache[key] = CacheEntry(data=value, created_at=self.clock())
            self._inflight.pop(key, None)
        return value

    def size(self) -> int:
        """获取缓存大小（含尚未被访问清理的过期条目）"""
        return len(self.cache)

    def keys(self) -> List[str]:
        """获取所有缓存键"""
        return list(self.cache.keys())

    def get_stats(self) -> Dict[str, Any]:
        """获取缓存统计信息"""
        total = self.hit_count + self.miss_count
        return {
            "name": self.name,
            "size": len(self.cache),
            "ttl": self.ttl,
            "hit_count": self.hit_count,
            "miss_count": self.miss_count,
            "hit_rate": self.hit_count / total if total > 0 else 0,
            "coalesced_count": self.coalesced_count,
            "inflight": len(self._inflight)
        }
