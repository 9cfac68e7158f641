"""
tucksql 查询子系统

包含查询构建器与 SQL 编译器
"""

from .builder import Builder
from .compiler import (
    QueryCompiler,
    CompiledQuery,
    SQLDialect,
    GENERIC,
    SQLITE,
    MYSQL,
    POSTGRESQL,
    get_dialect,
    dialect_for,
    register_dialect,
    convert_placeholders,
)

__all__ = [
    # Builder
    'Builder',
    # Compiler
    'QueryCompiler',
    'CompiledQuery',
    'SQLDialect',
    'GENERIC',
    'SQLITE',
    'MYSQL',
    'POSTGRESQL',
    'get_dialect',
    'dialect_for',
    'register_dialect',
    'convert_placeholders',
]
