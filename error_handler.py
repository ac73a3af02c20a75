"""
InnoDB 诊断错误处理

诊断管道的错误处理工具：段落提取的局部降级、语法错误识别与结构化错误日志。

错误处理分三类：
- 输入错误（空状态、无段落标记、缺少状态列）：抛出具名 DiagnosticsError 子类
- 段落解析缺口：在 run_section 中捕获，记录警告并回退到默认子记录
- 协作方错误（诊断查询本身失败）：不包装，记录后原样向上传播

@fileoverview 诊断错误处理 - 段落降级与错误日志
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

from typing import Any, Callable, Dict, Optional, TypeVar

from constants import StringConstants
from type_utils import DiagnosticsError, ErrorCategory, ErrorSeverity
from logger import logger

T = TypeVar("T")

# 段落提取中视为"解析缺口"的异常类型
SECTION_PARSE_ERRORS = (ValueError, IndexError, AttributeError, TypeError, KeyError)


class ErrorHandler:
    """
    错误处理器工具类

    全部为静态方法，不持有状态。
    """

    @staticmethod
    def run_section(
        name: str,
        extractor: Callable[[], T],
        default_factory: Callable[[], T],
        category: str = StringConstants.LOG_CATEGORY_PARSER
    ) -> T:
        """
        执行单个段落提取器

        提取器抛出解析类异常时记录警告并返回默认子记录，永不向上抛出解析异常。

        Args:
            name: 段落名称（用于日志）
            extractor: 段落提取函数
            default_factory: 默认子记录工厂
            category: 日志分类

        Returns:
            提取结果或默认子记录
        """
        try:
            return extractor()
        except SECTION_PARSE_ERRORS as e:
            logger.warn(
                f"Failed to parse section {name}, using defaults",
                category,
                {"section": name, "error": str(e), "error_type": type(e).__name__}
            )
            return default_factory()

    @staticmethod
    def is_syntax_error(error: BaseException) -> bool:
        """判断协作方错误是否为 SQL 语法错误"""
        return StringConstants.SYNTAX_ERROR_MARKER in str(error).lower()

    @staticmethod
    def classify(error: BaseException) -> ErrorCategory:
        """获取错误分类，非诊断错误归为协作方错误"""
        if isinstance(error, DiagnosticsError):
            return error.category
        return ErrorCategory.COLLABORATOR_ERROR

    @staticmethod
    def log_error(
        error: BaseException,
        context: Optional[Dict[str, Any]] = None,
        category: str = StringConstants.LOG_CATEGORY_SERVICE,
        logger_instance=None
    ) -> None:
        """
        记录错误信息

        Args:
            error: 要记录的错误
            context: 附加上下文（如连接标识）
            category: 日志分类
            logger_instance: 日志实例，如果为None则使用默认logger
        """
        log_instance = logger_instance or logger

        log_data: Dict[str, Any] = {
            "category": ErrorHandler.classify(error).value,
            "message": str(error),
            "context": context or {}
        }

        if isinstance(error, DiagnosticsError):
            log_data["severity"] = error.severity.value
            log_data["timestamp"] = error.timestamp.isoformat()
            if error.original_error:
                log_data["original_error"] = str(error.original_error)

            if error.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
                log_instance.error(error.message, category, error, log_data)
            else:
                log_instance.warn(error.message, category, log_data)
        else:
            log_instance.error(f"Collaborator error: {error}", category, error, log_data)
