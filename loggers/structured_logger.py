"""
结构化日志记录器

为诊断管道提供分类、多格式的结构化日志记录，支持敏感字段掩码、
日志回调与按分类派生的子记录器。

@fileoverview 结构化日志记录器实现
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

import json
import logging
import traceback
from datetime import datetime
from typing import Any, Dict, List, Optional, Callable, Union
from enum import Enum


class LogLevel(str, Enum):
    """日志级别枚举"""
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class LogFormat(str, Enum):
    """日志格式枚举"""
    JSON = "json"
    TEXT = "text"
    PRETTY = "pretty"


class LogOutput(str, Enum):
    """日志输出枚举"""
    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"


class LogConfig:
    """日志配置类"""

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        format: LogFormat = LogFormat.PRETTY,
        output: Union[LogOutput, List[LogOutput]] = LogOutput.CONSOLE,
        timestamp: bool = True,
        file_path: Optional[str] = None,
        sensitive_fields: Optional[List[str]] = None
    ):
        self.level = level
        self.format = format
        self.output = output
        self.timestamp = timestamp
        self.file_path = file_path
        self.sensitive_fields = sensitive_fields or ['password', 'token', 'secret']


class LogEntry:
    """日志条目"""

    def __init__(
        self,
        timestamp: datetime,
        level: LogLevel,
        message: str,
        category: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        stack: Optional[str] = None
    ):
        self.timestamp = timestamp
        self.level = level
        self.message = message
        self.category = category or 'default'
        self.metadata = metadata
        self.error = error
        self.stack = stack


LogCallback = Callable[[LogEntry], None]


class StructuredLogger:
    """
    结构化日志记录器

    每条日志带分类（组件名）和可选元数据；控制台输出直接打印，
    文件输出通过标准库 logging 的 FileHandler 完成。
    """

    # 日志级别权重（用于过滤）
    LEVEL_WEIGHTS = {
        LogLevel.DEBUG: 10,
        LogLevel.INFO: 20,
        LogLevel.WARN: 30,
        LogLevel.ERROR: 40,
        LogLevel.FATAL: 50
    }

    # 全局实例
    _instance: Optional['StructuredLogger'] = None

    def __init__(self, config: Optional[LogConfig] = None, category: Optional[str] = None):
        self.config = config or LogConfig()
        self.category = category
        self.callbacks: List[LogCallback] = []

        self.file_logger = None
        if self.config.file_path:
            self.file_logger = logging.getLogger(f'structured_logger_{id(self)}')
            self.file_logger.setLevel(self._convert_log_level(self.config.level))

            file_handler = logging.FileHandler(self.config.file_path, encoding='utf-8')
            file_handler.setFormatter(logging.Formatter('%(message)s'))
            self.file_logger.addHandler(file_handler)

    @classmethod
    def get_instance(cls, config: Optional[LogConfig] = None) -> 'StructuredLogger':
        """获取全局日志实例"""
        if cls._instance is None:
            cls._instance = cls(config)
        elif config:
            cls._instance.update_config(config)
        return cls._instance

    def update_config(self, config: LogConfig) -> None:
        """更新配置"""
        self.config = config

    def add_callback(self, callback: LogCallback) -> None:
        """添加日志回调"""
        self.callbacks.append(callback)

    def remove_callback(self, callback: LogCallback) -> None:
        """移除日志回调"""
        if callback in self.callbacks:
            self.callbacks.remove(callback)

    def debug(self, message: str, category: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
        """记录调试日志"""
        self.log(LogLevel.DEBUG, message, category, metadata)

    def info(self, message: str, category: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
        """记录信息日志"""
        self.log(LogLevel.INFO, message, category, metadata)

    def warn(self, message: str, category: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
        """记录警告日志"""
        self.log(LogLevel.WARN, message, category, metadata)

    def error(self, message: str, category: Optional[str] = None, error: Optional[Exception] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
        """记录错误日志"""
        self.log(LogLevel.ERROR, message, category, metadata, error)

    def fatal(self, message: str, category: Optional[str] = None, error: Optional[Exception] = None, metadata: Optional[Dict[str, Any]] = None) -> None:
        """记录致命日志"""
        self.log(LogLevel.FATAL, message, category, metadata, error)

    def log(
        self,
        level: LogLevel,
        message: str,
        category: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None
    ) -> None:
        """记录结构化日志"""
        if self.LEVEL_WEIGHTS[level] < self.LEVEL_WEIGHTS[self.config.level]:
            return

        entry = LogEntry(
            timestamp=datetime.now(),
            level=level,
            category=category or self.category or 'default',
            message=message,
            metadata=self._mask_sensitive_fields(metadata)
        )

        if error:
            entry.error = error
            entry.stack = ''.join(traceback.format_exception(type(error), error, error.__traceback__))

        formatted_log = self._format_log_entry(entry)
        self._output_log(formatted_log, level)

        for callback in self.callbacks:
            try:
                callback(entry)
            except Exception as e:
                print(f"Error in log callback: {e}")

    def child(self, category: str) -> 'StructuredLogger':
        """创建子日志记录器

        子记录器共享配置与回调列表，未显式指定分类时使用自身分类。
        """
        child_logger = StructuredLogger(self.config, category)
        child_logger.callbacks = self.callbacks
        child_logger.file_logger = self.file_logger
        return child_logger

    def _format_log_entry(self, entry: LogEntry) -> str:
        """格式化日志条目"""
        if self.config.format == LogFormat.JSON:
            return self._format_json(entry)
        return self._format_text(entry, pretty=self.config.format == LogFormat.PRETTY)

    def _format_json(self, entry: LogEntry) -> str:
        """JSON格式化"""
        data = {
            "timestamp": entry.timestamp.isoformat(),
            "level": entry.level.value,
            "category": entry.category,
            "message": entry.message
        }

        if entry.metadata:
            data["metadata"] = entry.metadata

        if entry.error:
            data["error"] = {
                "name": entry.error.__class__.__name__,
                "message": str(entry.error)
            }
            if hasattr(entry.error, 'category'):
                data["error"]["category"] = entry.error.category.value
            if hasattr(entry.error, 'severity'):
                data["error"]["severity"] = entry.error.severity.value

        return json.dumps(data, ensure_ascii=False, default=str)

    def _format_text(self, entry: LogEntry, pretty: bool = False) -> str:
        """文本/美化格式化"""
        timestamp = f"[{entry.timestamp.isoformat()}] " if self.config.timestamp else ""
        level = f"[{entry.level.value.upper()}] "
        category = f"[{entry.category}] "
        error = f" Error: {entry.error}" if entry.error else ""

        result = f"{timestamp}{level}{category}{entry.message}{error}"

        if entry.metadata:
            indent = 2 if pretty else None
            result += f" {json.dumps(entry.metadata, ensure_ascii=False, indent=indent, default=str)}"

        return result

    def _output_log(self, formatted_log: str, level: LogLevel) -> None:
        """输出日志"""
        outputs = [self.config.output] if isinstance(self.config.output, str) else self.config.output

        for output in outputs:
            if output in [LogOutput.CONSOLE, LogOutput.BOTH]:
                try:
                    print(formatted_log)
                except (OSError, ValueError):
                    pass

            if output in [LogOutput.FILE, LogOutput.BOTH] and self.file_logger:
                try:
                    self.file_logger.log(self._convert_log_level(level), "%s", formatted_log)
                except (OSError, ValueError) as e:
                    print(f"File logging failed: {e}, falling back to console: {formatted_log}")

    def _convert_log_level(self, level: LogLevel) -> int:
        """转换日志级别为Python logging级别"""
        mapping = {
            LogLevel.DEBUG: logging.DEBUG,
            LogLevel.INFO: logging.INFO,
            LogLevel.WARN: logging.WARNING,
            LogLevel.ERROR: logging.ERROR,
            LogLevel.FATAL: logging.CRITICAL
        }
        return mapping[level]

    def _mask_sensitive_fields(self, metadata: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """掩码敏感字段（递归处理嵌套字典）"""
        if not metadata or not isinstance(metadata, dict):
            return metadata

        masked = metadata.copy()

        for key, value in masked.items():
            if key in self.config.sensitive_fields:
                masked[key] = "***"
            elif isinstance(value, dict):
                masked[key] = self._mask_sensitive_fields(value)

        return masked
