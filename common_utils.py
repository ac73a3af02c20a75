"""
通用工具类 - 时间和数值工具

提供时间测量与状态文本数值解析的通用工具类，供解析器、缓存与服务层使用。

@fileoverview 通用工具类 - 时间处理、数值解析、百分比计算
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

import re
import time
from datetime import datetime
from typing import Callable, Dict, Optional


class TimeUtils:
    """时间工具类

    缓存过期判定使用单调时钟，不受系统时间调整影响。
    """

    @staticmethod
    def now_in_seconds() -> float:
        """获取当前单调时间戳（秒）"""
        return time.monotonic()

    @staticmethod
    def now_in_milliseconds() -> float:
        """获取当前高精度时间戳（毫秒）"""
        return time.perf_counter() * 1000

    @staticmethod
    def get_duration_in_ms(start_time: float) -> float:
        """计算持续时间（毫秒）

        Args:
            start_time: 开始时间戳（毫秒，来自 now_in_milliseconds）

        Returns:
            持续时间（毫秒）
        """
        return time.perf_counter() * 1000 - start_time

    @staticmethod
    def is_expired(created_at: float, ttl_seconds: float, now: Optional[float] = None) -> bool:
        """检查某个时间戳是否已过期

        年龄达到 TTL 即视为过期（age >= ttl）。

        Args:
            created_at: 创建时间戳（秒）
            ttl_seconds: 生存时间（秒）
            now: 当前时间戳（秒），默认取单调时钟

        Returns:
            如果已过期返回True，否则返回False
        """
        current_time = time.monotonic() if now is None else now
        return current_time - created_at >= ttl_seconds

    @staticmethod
    def parse_datetime(value: Optional[str], fmt: str = "%Y-%m-%d %H:%M:%S") -> Optional[datetime]:
        """解析日期时间字符串，无法解析时返回 None

        复制状态中的错误时间戳格式为 "YYMMDD HH:MM:SS"，另行尝试。
        """
        if not value:
            return None
        text = str(value).strip()
        for candidate in (fmt, "%y%m%d %H:%M:%S"):
            try:
                return datetime.strptime(text, candidate)
            except ValueError:
                continue
        return None


class NumberUtils:
    """数值解析工具类

    状态输出中的数字可能带千位分隔符或小数点，统一在此处理。
    """

    # 带千位分隔符的整数/小数，或普通整数/小数
    NUMBER_PATTERN = r"\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?"

    @staticmethod
    def parse_float(text: Optional[str], default: float = 0.0) -> float:
        """解析浮点数，去除千位分隔符"""
        if text is None:
            return default
        cleaned = str(text).replace(",", "").strip()
        if not cleaned:
            return default
        return float(cleaned)

    @staticmethod
    def parse_int(text: Optional[str], default: int = 0) -> int:
        """解析整数，小数部分截断"""
        if text is None:
            return default
        return int(NumberUtils.parse_float(text, float(default)))

    @staticmethod
    def search_int(pattern: str, text: str, group: int = 1, default: int = 0) -> int:
        """按正则提取整数字段，未匹配时返回默认值

        模式中的 {num} 占位符会被替换为 NUMBER_PATTERN 捕获组。
        """
        match = re.search(pattern.format(num=f"({NumberUtils.NUMBER_PATTERN})"), text)
        return NumberUtils.parse_int(match.group(group)) if match else default

    @staticmethod
    def search_float(pattern: str, text: str, group: int = 1, default: float = 0.0) -> float:
        """按正则提取浮点字段，未匹配时返回默认值"""
        match = re.search(pattern.format(num=f"({NumberUtils.NUMBER_PATTERN})"), text)
        return NumberUtils.parse_float(match.group(group)) if match else default

    @staticmethod
    def sum_numbers(text: str) -> int:
        """累加文本中的全部整数（用于 MySQL 8 的 [0, 0, 0, 0] 列表）"""
        return sum(int(n) for n in re.findall(r"\d+", text))

    @staticmethod
    def percent_change(before: float, after: float) -> float:
        """计算百分比变化

        before 为 0 时不做除法：after 也为 0 返回 0，否则返回 100。
        """
        if before == 0:
            return 0.0 if after == 0 else 100.0
        return (after - before) / before * 100


class PerformanceUtils:
    """性能监控工具类"""

    @staticmethod
    def create_timer() -> Dict[str, Callable[[], float]]:
        """创建性能计时器"""
        start_time = TimeUtils.now_in_milliseconds()
        return {
            'get_elapsed_ms': lambda: TimeUtils.get_duration_in_ms(start_time)
        }
