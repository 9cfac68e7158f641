"""
tucksql 工具模块
"""

from .make_migration import make_migration, list_migrations

__all__ = [
    'make_migration',
    'list_migrations',
]
