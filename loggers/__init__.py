"""
诊断日志记录系统

结构化日志记录器及其配置类型。

@fileoverview 日志系统包
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from .structured_logger import (
    StructuredLogger,
    LogLevel,
    LogFormat,
    LogOutput,
    LogConfig,
    LogEntry
)

__all__ = [
    'StructuredLogger',
    'LogLevel',
    'LogFormat',
    'LogOutput',
    'LogConfig',
    'LogEntry'
]
