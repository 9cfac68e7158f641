"""
tucksql 公共模块

包含异常定义、配置选项与工具函数
"""

from .exceptions import (
    TucksqlException,
    ConfigurationError,
    SchemaError,
    RecordNotFoundError,
    NotFoundError,
    DatabaseError,
    SerializationError,
    QueryError,
    TransactionError,
    MigrationError,
)
from .options import SqliteConnectorOptions, ConnectionConfig, DatabaseConfig

__all__ = [
    # Exceptions
    'TucksqlException',
    'ConfigurationError',
    'SchemaError',
    'RecordNotFoundError',
    'NotFoundError',
    'DatabaseError',
    'SerializationError',
    'QueryError',
    'TransactionError',
    'MigrationError',
    # Options
    'SqliteConnectorOptions',
    'ConnectionConfig',
    'DatabaseConfig',
]
