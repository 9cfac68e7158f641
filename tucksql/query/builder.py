"""
tucksql 查询构建器

链式、惰性的 SELECT 语句构建器。所有取值都通过 `?` 占位符延迟绑定，
绑定值按占位符在 SQL 中从左到右的顺序保存在 bindings 中。

Example:
    users = (
        User.query()
        .where_eq('active', True)
        .where('age', '>=', 18)
        .latest()
        .limit(10)
        .get(db)
    )
"""

import copy
from typing import (
    Any, Dict, Generic, Iterable, List, Optional, Tuple, Type, TypeVar, Union, TYPE_CHECKING,
)

from ..common.exceptions import QueryError
from ..core.types import to_bind_value
from .compiler import QueryCompiler, GENERIC

if TYPE_CHECKING:
    from ..core.connection import Connection, ConnectionManager
    from ..core.entity import Entity

T = TypeVar('T')

Row = Dict[str, Any]
DbHandle = Union['ConnectionManager', 'Connection']

_DIRECTIONS = ('ASC', 'DESC')


class Builder(Generic[T]):
    """
    查询构建器

    由 Entity.query() 或 Builder.table() 创建，链式调用修改自身并返回 self，
    终结方法（get / first / paginate / count / exists）执行查询但不修改构建器。
    """

    def __init__(self, table: str, model: Optional[Type[T]] = None):
        """
        Args:
            table: 目标表名
            model: 结果行要转换成的 Entity 类型（None 时返回字典）
        """
        self.table_name = table
        self.model = model
        self._columns: List[str] = ['*']
        self._distinct: bool = False
        self._joins: List[str] = []
        # 作用域条件：不含占位符，不参与 or_where 分组
        self._scopes: List[str] = []
        # 每个元素是一组用 OR 连接的条件，组之间用 AND 连接
        self._wheres: List[List[str]] = []
        self._where_bindings: List[Any] = []
        self._groups: List[str] = []
        self._havings: List[str] = []
        self._having_bindings: List[Any] = []
        self._orders: List[str] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    @classmethod
    def table(cls, name: str) -> 'Builder[Row]':
        """创建不绑定 Entity 的构建器，结果为字典"""
        return cls(name)

    # ========== 投影 ==========

    def select(self, *columns: Union[str, Iterable[str]]) -> 'Builder[T]':
        """
        覆盖默认的 `*` 投影

        Example:
            query.select('id', 'name')
            query.select(['id', 'name'])
        """
        selected: List[str] = []
        for col in columns:
            if isinstance(col, str):
                selected.append(col)
            else:
                selected.extend(col)
        self._columns = selected or ['*']
        return self

    def distinct(self) -> 'Builder[T]':
        """为第一个投影表达式加上 DISTINCT（幂等）"""
        self._distinct = True
        return self

    # ========== 条件 ==========

    def scope(self, clause: str) -> 'Builder[T]':
        """
        追加作用域条件

        作用域条件总是以 AND 与其他条件连接，or_where 不会与它组成分组。
        Entity 用它实现软删除过滤。

        Args:
            clause: 不含占位符的条件文本
        """
        self._scopes.append(clause)
        return self

    def where_raw(self, clause: str, *bindings: Any) -> 'Builder[T]':
        """
        追加原样的条件文本（调用方负责其安全性），渲染时加括号

        Example:
            query.where_raw('title = ? OR title = ?', 'A', 'B')
            # WHERE (title = ? OR title = ?)

        Args:
            clause: 条件文本，可包含 `?` 占位符
            bindings: 与 clause 中占位符一一对应的值
        """
        self._wheres.append([f"({clause})"])
        self._bind_where(*bindings)
        return self

    def where(self, column: str, operator: str, value: Any) -> 'Builder[T]':
        """追加 `column operator ?` 条件，value 延迟绑定"""
        self._wheres.append([f"{column} {operator} ?"])
        self._bind_where(value)
        return self

    def where_eq(self, column: str, value: Any) -> 'Builder[T]':
        """追加 `column = ?` 条件"""
        return self.where(column, '=', value)

    def or_where(self, column: str, operator: str, value: Any) -> 'Builder[T]':
        """
        把 `column operator ?` 以 OR 拼接到最近一个条件上

        Example:
            query.where_eq('role', 'admin').or_where('role', '=', 'owner')
            # WHERE (role = ? OR role = ?)

        Raises:
            QueryError: 之前没有任何条件
        """
        if not self._wheres:
            raise QueryError("or_where() requires a preceding where clause")
        self._wheres[-1].append(f"{column} {operator} ?")
        self._bind_where(value)
        return self

    def where_in(self, column: str, values: Iterable[Any]) -> 'Builder[T]':
        """
        追加 `column IN (?, ?, …)`，每个元素一个占位符

        空列表渲染为恒假条件 `0 = 1`。
        """
        return self._where_in(column, values, negate=False)

    def where_not_in(self, column: str, values: Iterable[Any]) -> 'Builder[T]':
        """
        追加 `column NOT IN (?, ?, …)`

        空列表渲染为恒真条件 `1 = 1`。
        """
        return self._where_in(column, values, negate=True)

    def _where_in(self, column: str, values: Iterable[Any], negate: bool) -> 'Builder[T]':
        items = list(values)
        if not items:
            self._wheres.append(['1 = 1' if negate else '0 = 1'])
            return self
        placeholders = ', '.join('?' for _ in items)
        keyword = 'NOT IN' if negate else 'IN'
        self._wheres.append([f"{column} {keyword} ({placeholders})"])
        self._bind_where(*items)
        return self

    def where_null(self, column: str) -> 'Builder[T]':
        self._wheres.append([f"{column} IS NULL"])
        return self

    def where_not_null(self, column: str) -> 'Builder[T]':
        self._wheres.append([f"{column} IS NOT NULL"])
        return self

    def where_between(self, column: str, low: Any, high: Any) -> 'Builder[T]':
        """追加 `column BETWEEN ? AND ?`，按 (low, high) 顺序绑定"""
        self._wheres.append([f"{column} BETWEEN ? AND ?"])
        self._bind_where(low, high)
        return self

    def where_exists(self, subquery: 'Builder[Any]') -> 'Builder[T]':
        """
        追加 `EXISTS (subquery)`

        子查询的绑定值追加在外层已有绑定值之后，保持相对顺序。
        """
        self._wheres.append([f"EXISTS ({subquery.to_sql()})"])
        self._where_bindings.extend(subquery.bindings)
        return self

    # ========== 连接 ==========

    def join(self, table: str, first: str, operator: str, second: str) -> 'Builder[T]':
        """
        追加 INNER JOIN

        Example:
            query.join('posts', 'users.id', '=', 'posts.user_id')
        """
        self._joins.append(f"INNER JOIN {table} ON {first} {operator} {second}")
        return self

    def left_join(self, table: str, first: str, operator: str, second: str) -> 'Builder[T]':
        """追加 LEFT JOIN"""
        self._joins.append(f"LEFT JOIN {table} ON {first} {operator} {second}")
        return self

    # ========== 排序 / 分页 / 分组 ==========

    def order_by(self, column: str, direction: str = 'ASC') -> 'Builder[T]':
        """
        追加排序

        Raises:
            QueryError: direction 不是 ASC / DESC
        """
        direction = direction.upper()
        if direction not in _DIRECTIONS:
            raise QueryError(f"Order direction must be ASC or DESC, got '{direction}'")
        self._orders.append(f"{column} {direction}")
        return self

    def latest(self, column: str = 'created_at') -> 'Builder[T]':
        return self.order_by(column, 'DESC')

    def oldest(self, column: str = 'created_at') -> 'Builder[T]':
        return self.order_by(column, 'ASC')

    def limit(self, limit: int) -> 'Builder[T]':
        """设置 LIMIT（后调用覆盖先调用）"""
        self._limit = int(limit)
        return self

    def offset(self, offset: int) -> 'Builder[T]':
        """设置 OFFSET（后调用覆盖先调用）"""
        self._offset = int(offset)
        return self

    def group_by(self, *columns: str) -> 'Builder[T]':
        self._groups.extend(columns)
        return self

    def having(self, column: str, operator: str, value: Any) -> 'Builder[T]':
        """追加 HAVING 条件，value 延迟绑定（排在所有 WHERE 绑定值之后）"""
        self._havings.append(f"{column} {operator} ?")
        self._having_bindings.append(to_bind_value(value))
        return self

    # ========== 渲染 ==========

    @property
    def bindings(self) -> List[Any]:
        """按占位符顺序排列的绑定值"""
        return self._where_bindings + self._having_bindings

    def to_sql(self) -> str:
        """渲染 SQL 文本（纯函数，可重复调用）"""
        return QueryCompiler(GENERIC).compile(self).sql

    def copy(self) -> 'Builder[T]':
        """返回独立的副本"""
        clone = copy.copy(self)
        clone._columns = list(self._columns)
        clone._joins = list(self._joins)
        clone._scopes = list(self._scopes)
        clone._wheres = [list(group) for group in self._wheres]
        clone._where_bindings = list(self._where_bindings)
        clone._groups = list(self._groups)
        clone._havings = list(self._havings)
        clone._having_bindings = list(self._having_bindings)
        clone._orders = list(self._orders)
        return clone

    def _bind_where(self, *values: Any) -> None:
        self._where_bindings.extend(to_bind_value(v) for v in values)

    # ========== 执行 ==========

    def get(self, db: DbHandle) -> List[T]:
        """执行查询并返回全部结果"""
        conn = self._resolve(db)
        compiled = QueryCompiler(conn.dialect).compile(self)
        rows = conn.fetch_all(compiled.sql, compiled.params)
        return [self._hydrate(row) for row in rows]

    def first(self, db: DbHandle) -> Optional[T]:
        """以 LIMIT 1 执行查询，无结果返回 None"""
        single = self.copy().limit(1)
        conn = self._resolve(db)
        compiled = QueryCompiler(conn.dialect).compile(single)
        row = conn.fetch_one(compiled.sql, compiled.params)
        return self._hydrate(row) if row is not None else None

    def count(self, db: DbHandle) -> int:
        """按当前过滤条件统计行数"""
        conn = self._resolve(db)
        compiled = QueryCompiler(conn.dialect).compile_count(self)
        value = conn.fetch_value(compiled.sql, compiled.params)
        return int(value or 0)

    def exists(self, db: DbHandle) -> bool:
        return self.first(db) is not None

    def paginate(self, db: DbHandle, page: int = 1, per_page: int = 15) -> Tuple[List[T], int]:
        """
        分页查询

        总数通过对整张表的 COUNT(*) 获得，不考虑 JOIN 和过滤条件；
        需要按条件统计时请使用 count()。

        Args:
            db: ConnectionManager 或 Connection
            page: 页码，从 1 开始
            per_page: 每页条数

        Returns:
            (当前页结果, 表总行数)

        Raises:
            QueryError: page 或 per_page 小于 1
        """
        if page < 1 or per_page < 1:
            raise QueryError(f"Invalid pagination: page={page}, per_page={per_page}")

        conn = self._resolve(db)
        total = conn.fetch_value(f"SELECT COUNT(*) AS aggregate FROM {self.table_name}")

        paged = self.copy().limit(per_page).offset((page - 1) * per_page)
        compiled = QueryCompiler(conn.dialect).compile(paged)
        rows = conn.fetch_all(compiled.sql, compiled.params)
        return [self._hydrate(row) for row in rows], int(total or 0)

    def _resolve(self, db: DbHandle) -> 'Connection':
        from ..core.connection import resolve_connection

        name = self.model.connection_name() if self.model is not None else None  # type: ignore[attr-defined]
        return resolve_connection(db, name)

    def _hydrate(self, row: Row) -> T:
        if self.model is None:
            return row  # type: ignore[return-value]
        return self.model.from_row(row)  # type: ignore[attr-defined]

    def __repr__(self) -> str:
        return f"Builder(table='{self.table_name}', sql='{self.to_sql()}')"
