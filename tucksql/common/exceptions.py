"""
tucksql 异常定义
"""

from typing import Any, Optional


class TucksqlException(Exception):
    """tucksql 基础异常类"""


class ConfigurationError(TucksqlException):
    """配置异常（连接名未注册、URL 无效、驱动不存在等）"""


class SchemaError(ConfigurationError):
    """表结构定义异常"""


class RecordNotFoundError(TucksqlException):
    """记录不存在异常"""
    def __init__(self, table_name: str, pk: Any):
        self.table_name = table_name
        self.pk = pk
        super().__init__(f"Record with primary key '{pk}' not found in table '{table_name}'")


# 与错误分类中的 NotFound 同义
NotFoundError = RecordNotFoundError


class DatabaseError(TucksqlException):
    """数据库驱动异常（连接、语法、约束冲突等）"""
    def __init__(self, message: str, sql: Optional[str] = None):
        self.sql = sql
        super().__init__(message)


class SerializationError(TucksqlException):
    """序列化异常（无法转换为列值映射）"""


class QueryError(TucksqlException):
    """查询构建异常"""


class TransactionError(TucksqlException):
    """事务异常"""


class MigrationError(TucksqlException):
    """数据迁移异常"""
    def __init__(self, message: str, migration: Optional[str] = None):
        self.migration = migration
        super().__init__(message)
