"""
诊断配置管理系统 - 统一配置中心

类型安全的配置加载与验证，所有配置均从环境变量读取（支持 .env 文件），
未设置时回退到 constants.DefaultConfig 中的默认值。

@fileoverview 诊断配置管理 - 数据库、缓存与日志配置
@author liyq
@version 1.0.0
@since 1.0.0
@updated 2025-10-12
@license MIT
"""

import os
from pydantic import BaseModel, Field, field_validator
from dotenv import load_dotenv

from constants import DefaultConfig, StringConstants

# 加载环境变量配置
load_dotenv()


class DatabaseConfig(BaseModel):
    """数据库配置

    状态查询所用的 MySQL 连接参数，仅由 AsyncmyStatusSource 使用。
    """
    host: str = Field(default_factory=lambda: os.getenv(StringConstants.ENV_MYSQL_HOST, StringConstants.DEFAULT_HOST))
    port: int = Field(default_factory=lambda: int(os.getenv(StringConstants.ENV_MYSQL_PORT, str(DefaultConfig.MYSQL_PORT))))
    user: str = Field(default_factory=lambda: os.getenv(StringConstants.ENV_MYSQL_USER, StringConstants.DEFAULT_USER))
    password: str = Field(default_factory=lambda: os.getenv(StringConstants.ENV_MYSQL_PASSWORD, StringConstants.DEFAULT_PASSWORD))
    connect_timeout: int = Field(default_factory=lambda: int(os.getenv(StringConstants.ENV_CONNECT_TIMEOUT, str(DefaultConfig.CONNECT_TIMEOUT))))
    pool_max_size: int = DefaultConfig.POOL_MAX_SIZE

    @field_validator('port')
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError(f'端口号必须在1-65535之间，当前值: {v}')
        return v

    @field_validator('connect_timeout')
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if not 1 <= v <= 3600:
            raise ValueError(f'超时时间必须在1-3600秒之间，当前值: {v}')
        return v


class CacheConfig(BaseModel):
    """缓存配置

    引擎状态与复制状态缓存的生存时间（秒）。
    """
    status_cache_ttl: float = Field(default_factory=lambda: float(os.getenv(StringConstants.ENV_STATUS_CACHE_TTL, str(DefaultConfig.STATUS_CACHE_TTL))))
    replication_cache_ttl: float = Field(default_factory=lambda: float(os.getenv(StringConstants.ENV_REPLICATION_CACHE_TTL, str(DefaultConfig.REPLICATION_CACHE_TTL))))

    @field_validator('status_cache_ttl', 'replication_cache_ttl')
    @classmethod
    def validate_ttl(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f'TTL必须大于0，当前值: {v}')
        return v


class DiagnosticsConfig(BaseModel):
    """日志配置"""
    log_level: str = Field(default_factory=lambda: os.getenv(StringConstants.ENV_LOG_LEVEL, DefaultConfig.LOG_LEVEL).lower())
    log_format: str = Field(default_factory=lambda: os.getenv(StringConstants.ENV_LOG_FORMAT, DefaultConfig.LOG_FORMAT).lower())

    @field_validator('log_level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        if v not in ('debug', 'info', 'warn', 'error', 'fatal'):
            raise ValueError(f'不支持的日志级别: {v}')
        return v

    @field_validator('log_format')
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ('json', 'text', 'pretty'):
            raise ValueError(f'不支持的日志格式: {v}')
        return v


class ConfigurationManager:
    """配置管理器类

    负责从环境变量加载、验证和初始化所有诊断配置。
    """

    def __init__(self):
        """初始化配置管理器"""
        self.database = DatabaseConfig()
        self.cache = CacheConfig()
        self.diagnostics = DiagnosticsConfig()

    def to_object(self) -> dict:
        """导出配置用于诊断

        敏感信息（密码）将被掩码。

        Returns:
            dict: 清理后的配置对象
        """
        config_obj = {
            "database": self.database.model_dump(),
            "cache": self.cache.model_dump(),
            "diagnostics": self.diagnostics.model_dump()
        }

        config_obj["database"]["password"] = "***"

        return config_obj

    def get_summary(self) -> dict:
        """获取配置摘要

        Returns:
            dict: 关键配置参数的字符串形式
        """
        return {
            "database_host": self.database.host,
            "database_port": str(self.database.port),
            "status_cache_ttl": str(self.cache.status_cache_ttl),
            "replication_cache_ttl": str(self.cache.replication_cache_ttl),
            "log_level": self.diagnostics.log_level
        }

    def reload(self) -> None:
        """重新加载配置

        从环境变量重新加载所有配置，适用于运行时配置更新。
        """
        load_dotenv(override=True)

        self.database = DatabaseConfig()
        self.cache = CacheConfig()
        self.diagnostics = DiagnosticsConfig()


# 创建全局配置管理器实例
config_manager = ConfigurationManager()
