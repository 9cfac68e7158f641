"""
tucksql 表结构 DSL

Example:
    sql = Schema.create('users', lambda table: (
        table.id(),
        table.string('name'),
        table.string('email').unique(),
        table.timestamps(),
    ))
"""

from typing import Any, Callable, List, Optional

from ..common.exceptions import SchemaError
from ..query.compiler import SQLDialect, GENERIC


def quote_literal(value: Any) -> str:
    """把 Python 值渲染为 SQL 字面量"""
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, (int, float)):
        return repr(value)
    text = str(value).replace("'", "''")
    return f"'{text}'"


class ColumnDefinition:
    """
    列定义

    修饰方法返回自身以便链式调用：
        table.string('email').nullable().unique()
    """

    def __init__(self, name: str, column_type: str, auto_increment: bool = False):
        """
        Args:
            name: 列名
            column_type: 逻辑类型（'string'、'integer' 等，由方言映射）或原样的 SQL 类型
            auto_increment: 是否自增
        """
        self.name = name
        self.column_type = column_type
        self.auto_increment = auto_increment
        self.allow_null = False
        self.is_unique = False
        self.default_sql: Optional[str] = None
        self.use_current_on_update = False

    def nullable(self, value: bool = True) -> 'ColumnDefinition':
        self.allow_null = value
        return self

    def unique(self) -> 'ColumnDefinition':
        self.is_unique = True
        return self

    def default(self, value: Any) -> 'ColumnDefinition':
        """设置默认值（Python 值，渲染为字面量）"""
        self.default_sql = quote_literal(value)
        return self

    def default_raw(self, expression: str) -> 'ColumnDefinition':
        """设置默认值表达式（原样渲染，如 CURRENT_TIMESTAMP）"""
        self.default_sql = expression
        return self

    def use_current(self, on_update: bool = False) -> 'ColumnDefinition':
        """默认值为当前时间；on_update 为 True 时在方言支持的情况下更新时刷新"""
        self.default_sql = 'CURRENT_TIMESTAMP'
        self.use_current_on_update = on_update
        return self

    def to_sql(self, dialect: SQLDialect = GENERIC) -> str:
        """渲染列定义"""
        if self.auto_increment:
            parts = [self.name, dialect.auto_increment_type]
            if dialect.auto_increment_not_null:
                parts.append('NOT NULL')
            if dialect.auto_increment_keyword:
                parts.append(dialect.auto_increment_keyword)
            return ' '.join(parts)

        parts = [self.name, dialect.column_type(self.column_type)]
        if not self.allow_null:
            parts.append('NOT NULL')

        default = self.default_sql
        if self.use_current_on_update:
            default = dialect.updated_at_default
        if default is not None:
            parts.append(f"DEFAULT {default}")

        if self.is_unique:
            parts.append('UNIQUE')
        return ' '.join(parts)

    def __repr__(self) -> str:
        return f"ColumnDefinition(name='{self.name}', type='{self.column_type}')"


class Blueprint:
    """表结构蓝图：有序列定义 + 主键"""

    def __init__(self, table: str):
        self.table = table
        self.columns: List[ColumnDefinition] = []
        self.primary_key: Optional[str] = None

    def id(self, name: str = 'id') -> ColumnDefinition:
        """添加自增主键列"""
        column = self._add(ColumnDefinition(name, 'big_integer', auto_increment=True))
        self.primary_key = name
        return column

    def string(self, name: str, length: int = 255) -> ColumnDefinition:
        return self._add(ColumnDefinition(name, 'string' if length == 255 else f'VARCHAR({length})'))

    def text(self, name: str) -> ColumnDefinition:
        return self._add(ColumnDefinition(name, 'text'))

    def integer(self, name: str) -> ColumnDefinition:
        return self._add(ColumnDefinition(name, 'integer'))

    def big_integer(self, name: str) -> ColumnDefinition:
        return self._add(ColumnDefinition(name, 'big_integer'))

    def foreign_id(self, name: str) -> ColumnDefinition:
        """外键列（BIGINT）"""
        return self.big_integer(name)

    def float(self, name: str) -> ColumnDefinition:
        return self._add(ColumnDefinition(name, 'float'))

    def boolean(self, name: str) -> ColumnDefinition:
        return self._add(ColumnDefinition(name, 'boolean'))

    def timestamp(self, name: str) -> ColumnDefinition:
        return self._add(ColumnDefinition(name, 'timestamp'))

    def date(self, name: str) -> ColumnDefinition:
        return self._add(ColumnDefinition(name, 'date'))

    def timestamps(self) -> None:
        """添加 created_at / updated_at，默认值为当前时间"""
        self.timestamp('created_at').use_current()
        self.timestamp('updated_at').use_current(on_update=True)

    def soft_deletes(self) -> ColumnDefinition:
        """添加可空的 deleted_at 列"""
        return self.timestamp('deleted_at').nullable()

    def _add(self, column: ColumnDefinition) -> ColumnDefinition:
        if any(c.name == column.name for c in self.columns):
            raise SchemaError(f"Duplicate column '{column.name}' in table '{self.table}'")
        self.columns.append(column)
        return column

    def to_sql(self, dialect: SQLDialect = GENERIC, if_not_exists: bool = False) -> str:
        """
        渲染 CREATE TABLE 语句

        Raises:
            SchemaError: 没有任何列
        """
        if not self.columns:
            raise SchemaError(f"Table '{self.table}' has no columns")

        lines = [column.to_sql(dialect) for column in self.columns]
        if self.primary_key is not None:
            lines.append(f"PRIMARY KEY ({self.primary_key})")

        keyword = 'CREATE TABLE IF NOT EXISTS' if if_not_exists else 'CREATE TABLE'
        body = ',\n    '.join(lines)
        return f"{keyword} {self.table} (\n    {body}\n);"


class Schema:
    """DDL 入口"""

    @staticmethod
    def create(
        table: str,
        callback: Callable[[Blueprint], Any],
        dialect: SQLDialect = GENERIC,
        if_not_exists: bool = False,
    ) -> str:
        """
        用回调填充蓝图并渲染 CREATE TABLE

        Args:
            table: 表名
            callback: 接收 Blueprint 的回调
            dialect: SQL 方言
            if_not_exists: 是否渲染 IF NOT EXISTS

        Returns:
            DDL 文本
        """
        blueprint = Blueprint(table)
        callback(blueprint)
        return blueprint.to_sql(dialect, if_not_exists)

    @staticmethod
    def drop(table: str) -> str:
        return f"DROP TABLE {table};"

    @staticmethod
    def drop_if_exists(table: str) -> str:
        return f"DROP TABLE IF EXISTS {table};"
