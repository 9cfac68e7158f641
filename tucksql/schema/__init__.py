"""
tucksql 表结构与迁移

包含 Blueprint DSL、迁移执行器与数据填充
"""

from .blueprint import Blueprint, ColumnDefinition, Schema
from .migrator import Migrator, MigrationFile, MigrationRecord, load_migrations
from .seeder import Seeder

__all__ = [
    'Blueprint',
    'ColumnDefinition',
    'Schema',
    'Migrator',
    'MigrationFile',
    'MigrationRecord',
    'load_migrations',
    'Seeder',
]
