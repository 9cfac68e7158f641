"""
tucksql - 轻量级 SQL ORM

提供惰性查询构建器、Active Record 风格的 Entity、命名连接管理以及基于 SQL 文件的迁移。

Example:
    from tucksql import ConnectionManager, Entity, Schema, SQLITE

    db = ConnectionManager.from_url('sqlite::memory:')

    class User(Entity):
        __tablename__ = 'users'

    user_id = User.create(db, name='Alice', email='alice@example.com')
    users = User.query().where_eq('name', 'Alice').get(db)
"""

from .core import (
    Entity,
    Connection,
    ConnectionManager,
    register_serializer,
    event,
)
from .query import Builder, QueryCompiler, SQLDialect, register_dialect, GENERIC, SQLITE, MYSQL, POSTGRESQL
from .schema import Blueprint, Schema, Migrator, Seeder
from .common import (
    DatabaseConfig,
    ConnectionConfig,
    SqliteConnectorOptions,
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

__version__ = '0.1.0'

__all__ = [
    # Entity & connections
    'Entity',
    'Connection',
    'ConnectionManager',
    'register_serializer',
    'register_dialect',
    'event',
    # Query
    'Builder',
    'QueryCompiler',
    'SQLDialect',
    'GENERIC',
    'SQLITE',
    'MYSQL',
    'POSTGRESQL',
    # Schema
    'Blueprint',
    'Schema',
    'Migrator',
    'Seeder',
    # Config
    'DatabaseConfig',
    'ConnectionConfig',
    'SqliteConnectorOptions',
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
]
