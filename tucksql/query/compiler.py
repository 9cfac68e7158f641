"""
tucksql SQL 编译器

把 Builder 的结构化状态渲染为 SQL 文本，并处理方言差异：
- LIMIT / OFFSET 语法
- 占位符风格（qmark / format / pyformat / numeric / numeric_dollar）
- DDL 类型映射（供 schema 模块使用）

所有内部 SQL 均以 `?` 占位符书写，执行前由 convert_placeholders 转换为驱动的风格。
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, TYPE_CHECKING

from ..common.exceptions import ConfigurationError

if TYPE_CHECKING:
    from .builder import Builder


@dataclass(frozen=True)
class SQLDialect:
    """SQL 方言描述"""
    name: str
    supports_returning: bool = False
    limit_all: Optional[str] = None  # 只有 OFFSET 时需要补上的 LIMIT 值；None 表示允许单独 OFFSET
    auto_increment_type: str = 'BIGINT'
    auto_increment_keyword: str = 'AUTO_INCREMENT'
    auto_increment_not_null: bool = True
    updated_at_default: str = 'CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP'
    column_types: Dict[str, str] = field(default_factory=dict)

    def column_type(self, logical: str) -> str:
        """逻辑类型 -> 方言列类型（未知逻辑类型原样返回）"""
        return self.column_types.get(logical, logical)


_BASE_TYPES: Dict[str, str] = {
    'string': 'VARCHAR(255)',
    'text': 'TEXT',
    'integer': 'INT',
    'big_integer': 'BIGINT',
    'float': 'DOUBLE',
    'boolean': 'BOOLEAN',
    'timestamp': 'DATETIME',
    'date': 'DATE',
}


# 不绑定具体数据库的默认方言（用于 to_sql() 与 Schema.create 的默认输出）
GENERIC = SQLDialect(name='generic', column_types=dict(_BASE_TYPES))

SQLITE = SQLDialect(
    name='sqlite',
    limit_all='-1',
    auto_increment_type='INTEGER',
    auto_increment_keyword='',
    auto_increment_not_null=False,
    updated_at_default='CURRENT_TIMESTAMP',
    column_types={**_BASE_TYPES, 'integer': 'INTEGER', 'float': 'REAL'},
)

MYSQL = SQLDialect(
    name='mysql',
    limit_all='18446744073709551615',
    column_types=dict(_BASE_TYPES),
)

POSTGRESQL = SQLDialect(
    name='postgresql',
    supports_returning=True,
    auto_increment_type='BIGSERIAL',
    auto_increment_keyword='',
    updated_at_default='CURRENT_TIMESTAMP',
    column_types={
        **_BASE_TYPES,
        'integer': 'INTEGER',
        'float': 'DOUBLE PRECISION',
        'timestamp': 'TIMESTAMP',
    },
)

_DIALECTS: Dict[str, SQLDialect] = {
    d.name: d for d in (GENERIC, SQLITE, MYSQL, POSTGRESQL)
}


def get_dialect(name: str) -> SQLDialect:
    """
    按名称获取方言

    Raises:
        ConfigurationError: 未知方言
    """
    key = name.lower()
    if key == 'postgres':
        key = 'postgresql'
    if key not in _DIALECTS:
        raise ConfigurationError(
            f"Unknown SQL dialect: '{name}'. Available: {', '.join(sorted(_DIALECTS))}"
        )
    return _DIALECTS[key]


def dialect_for(backend: str) -> SQLDialect:
    """
    按 SQLAlchemy 后端名（engine.dialect.name）获取方言，未注册的后端使用 GENERIC

    Example:
        dialect_for('sqlite')  # SQLITE
        dialect_for('mssql')   # GENERIC
    """
    try:
        return get_dialect(backend)
    except ConfigurationError:
        return GENERIC


def register_dialect(dialect: SQLDialect, *aliases: str) -> None:
    """
    注册方言，使对应后端的连接使用它渲染 SQL

    Args:
        dialect: 方言描述，按 dialect.name 注册
        aliases: 额外的后端名
    """
    for key in (dialect.name, *aliases):
        _DIALECTS[key.lower()] = dialect


# paramstyle -> 第 n 个占位符的写法
_PLACEHOLDERS: Dict[str, Callable[[int], str]] = {
    'format': lambda n: '%s',
    'pyformat': lambda n: '%s',
    'numeric': lambda n: f':{n}',
    'numeric_dollar': lambda n: f'${n}',
}


def convert_placeholders(sql: str, paramstyle: str) -> str:
    """
    把 `?` 占位符转换为驱动的参数风格

    引号内的 `?` 保持不变。format / pyformat 风格下字面量 `%` 会被转义为 `%%`。

    Args:
        sql: 使用 `?` 占位符的 SQL
        paramstyle: 'qmark' | 'format' | 'pyformat' | 'numeric' | 'numeric_dollar'

    Returns:
        转换后的 SQL

    Raises:
        ConfigurationError: 不支持的参数风格（如 named）
    """
    if paramstyle == 'qmark':
        return sql
    if paramstyle not in _PLACEHOLDERS:
        raise ConfigurationError(f"Unsupported paramstyle: '{paramstyle}'")

    placeholder = _PLACEHOLDERS[paramstyle]
    escape_percent = paramstyle in ('format', 'pyformat')
    out: List[str] = []
    quote = ''
    index = 0
    for ch in sql:
        if escape_percent and ch == '%':
            out.append('%%')
            continue
        if quote:
            if ch == quote:
                quote = ''
            out.append(ch)
        elif ch in ('\'', '"', '`'):
            quote = ch
            out.append(ch)
        elif ch == '?':
            index += 1
            out.append(placeholder(index))
        else:
            out.append(ch)
    return ''.join(out)


@dataclass(frozen=True)
class CompiledQuery:
    """编译结果：SQL 文本 + 按占位符顺序排列的参数"""
    sql: str
    params: Tuple[Any, ...]


class QueryCompiler:
    """把 Builder 渲染为 SELECT 语句"""

    def __init__(self, dialect: SQLDialect = GENERIC):
        self.dialect = dialect

    def compile(self, builder: 'Builder[Any]') -> CompiledQuery:
        """
        编译查询

        子句顺序：SELECT … FROM table [JOIN…] [WHERE…] [GROUP BY…] [HAVING…]
        [ORDER BY…] [LIMIT n] [OFFSET n]

        Args:
            builder: 查询构建器

        Returns:
            CompiledQuery
        """
        parts = [f"SELECT {self._columns(builder)} FROM {builder.table_name}"]

        if builder._joins:
            parts.append(' '.join(builder._joins))

        where_sql = self.compile_wheres(builder)
        if where_sql:
            parts.append(f"WHERE {where_sql}")

        if builder._groups:
            parts.append(f"GROUP BY {', '.join(builder._groups)}")

        if builder._havings:
            parts.append(f"HAVING {' AND '.join(builder._havings)}")

        if builder._orders:
            parts.append(f"ORDER BY {', '.join(builder._orders)}")

        parts.extend(self._limit_offset(builder._limit, builder._offset))

        return CompiledQuery(' '.join(parts), tuple(builder.bindings))

    def compile_count(self, builder: 'Builder[Any]') -> CompiledQuery:
        """
        编译带过滤条件的 COUNT(*) 查询

        有 GROUP BY / DISTINCT 时包装为子查询，否则直接替换投影。
        ORDER BY / LIMIT / OFFSET 被忽略。
        """
        counted = builder.copy()
        counted._orders = []
        counted._limit = None
        counted._offset = None

        if counted._groups or counted._distinct:
            inner = self.compile(counted)
            return CompiledQuery(
                f"SELECT COUNT(*) AS aggregate FROM ({inner.sql}) AS aggregate_table",
                inner.params,
            )

        counted._columns = ['COUNT(*) AS aggregate']
        return self.compile(counted)

    def compile_wheres(self, builder: 'Builder[Any]') -> str:
        """
        渲染 WHERE 子句主体（不含 WHERE 关键字）

        作用域条件（如软删除过滤）排在最前，与其余条件始终以 AND 连接。
        """
        rendered = list(builder._scopes)
        for group in builder._wheres:
            if len(group) == 1:
                rendered.append(group[0])
            else:
                rendered.append(f"({' OR '.join(group)})")
        return ' AND '.join(rendered)

    def _columns(self, builder: 'Builder[Any]') -> str:
        columns = list(builder._columns) or ['*']
        if builder._distinct and not columns[0].upper().startswith('DISTINCT'):
            columns[0] = f"DISTINCT {columns[0]}"
        return ', '.join(columns)

    def _limit_offset(self, limit: Optional[int], offset: Optional[int]) -> List[str]:
        parts = []
        if limit is not None:
            parts.append(f"LIMIT {limit}")
        elif offset is not None and self.dialect.limit_all is not None:
            parts.append(f"LIMIT {self.dialect.limit_all}")
        if offset is not None:
            parts.append(f"OFFSET {offset}")
        return parts
