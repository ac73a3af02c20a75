"""
诊断日志记录入口

按 DiagnosticsConfig 创建全局结构化日志记录器实例，各组件通过
`from logger import logger` 使用，并以组件名作为日志分类。

@fileoverview 全局日志实例
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from config import config_manager
from loggers.structured_logger import StructuredLogger, LogConfig, LogLevel, LogFormat, LogOutput

# 全局结构化日志记录器实例
logger = StructuredLogger.get_instance(LogConfig(
    level=LogLevel(config_manager.diagnostics.log_level),
    format=LogFormat(config_manager.diagnostics.log_format),
    output=[LogOutput.CONSOLE],
    timestamp=True,
    sensitive_fields=['password', 'token', 'secret']
))

__all__ = [
    'logger',
    'StructuredLogger',
    'LogConfig',
    'LogLevel'
]
