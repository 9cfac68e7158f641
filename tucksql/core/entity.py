"""
tucksql Entity（Active Record）

Entity 把一个 Python 类映射到一张表，提供：
- 类方法 CRUD：query / all / find / find_or_fail / create
- 实例方法：update / delete / force_delete / restore
- 软删除与时间戳（created_at / updated_at / deleted_at）
- 关联关系构建器：has_many / has_one / belongs_to / belongs_to_many / morph_one / morph_many

关联关系都是惰性的：返回 Builder，由调用方决定何时执行（get / first）。

Example:
    class User(Entity):
        __tablename__ = 'users'

    class Post(Entity):
        __tablename__ = 'posts'
        __soft_deletes__ = True

    user_id = User.create(db, {'name': 'Alice', 'email': 'alice@example.com'})
    user = User.find_or_fail(db, user_id)
    posts = user.has_many(Post, 'user_id').latest().get(db)
"""

from typing import Any, Dict, List, Optional, Type, TypeVar, Union, TYPE_CHECKING

from ..common.exceptions import ConfigurationError, QueryError, RecordNotFoundError
from ..common.utils import current_timestamp
from ..query.builder import Builder
from .connection import Connection, resolve_connection
from .event import event
from .types import serialize_payload

if TYPE_CHECKING:
    from .connection import ConnectionManager

E = TypeVar('E', bound='Entity')
R = TypeVar('R', bound='Entity')

DbHandle = Union['ConnectionManager', Connection]

CREATED_AT = 'created_at'
UPDATED_AT = 'updated_at'
DELETED_AT = 'deleted_at'


class Entity:
    """
    Active Record 基类

    类属性：
        __tablename__: 表名（必填）
        __primary_key__: 主键列名，默认 'id'
        __connection__: 连接名，None 表示默认连接
        __timestamps__: 是否自动维护 created_at / updated_at，默认 True
        __soft_deletes__: 是否软删除（写 deleted_at），默认 False
    """

    __tablename__: str = ''
    __primary_key__: str = 'id'
    __connection__: Optional[str] = None
    __timestamps__: bool = True
    __soft_deletes__: bool = False

    def __init__(self, **attributes: Any):
        for name, value in attributes.items():
            setattr(self, name, value)

    # ========== 元数据 ==========

    @classmethod
    def table_name(cls) -> str:
        if not cls.__tablename__:
            raise ConfigurationError(f"{cls.__name__} must define __tablename__")
        return cls.__tablename__

    @classmethod
    def primary_key(cls) -> str:
        return cls.__primary_key__

    @classmethod
    def connection_name(cls) -> Optional[str]:
        return cls.__connection__

    @property
    def pk(self) -> Any:
        """主键值"""
        return getattr(self, self.primary_key(), None)

    # ========== 行解码 / 序列化 ==========

    @classmethod
    def from_row(cls: Type[E], row: Dict[str, Any]) -> E:
        """从查询结果行构建实例（子类可覆盖以自定义解码）"""
        return cls(**row)

    def to_dict(self) -> Dict[str, Any]:
        """返回所有公开属性"""
        return {k: v for k, v in vars(self).items() if not k.startswith('_')}

    @classmethod
    def fresh_timestamp(cls) -> str:
        """时间戳列使用的当前时间"""
        return current_timestamp()

    # ========== 查询入口 ==========

    @classmethod
    def query(cls: Type[E]) -> Builder[E]:
        """新建查询；启用软删除时自动排除 deleted_at 非空的行"""
        builder: Builder[E] = Builder(cls.table_name(), cls)
        if cls.__soft_deletes__:
            builder.scope(f"{DELETED_AT} IS NULL")
        return builder

    @classmethod
    def with_trashed(cls: Type[E]) -> Builder[E]:
        """新建包含已软删除行的查询"""
        return Builder(cls.table_name(), cls)

    @classmethod
    def only_trashed(cls: Type[E]) -> Builder[E]:
        """新建只包含已软删除行的查询"""
        return Builder(cls.table_name(), cls).scope(f"{DELETED_AT} IS NOT NULL")

    @classmethod
    def all(cls: Type[E], db: DbHandle) -> List[E]:
        return cls.query().get(db)

    @classmethod
    def find(cls: Type[E], db: DbHandle, pk: Any) -> Optional[E]:
        """按主键查询，不存在返回 None"""
        return cls.query().where_eq(cls.primary_key(), pk).first(db)

    @classmethod
    def find_or_fail(cls: Type[E], db: DbHandle, pk: Any) -> E:
        """
        按主键查询

        Raises:
            RecordNotFoundError: 记录不存在
        """
        instance = cls.find(db, pk)
        if instance is None:
            raise RecordNotFoundError(cls.table_name(), pk)
        return instance

    # ========== 写操作 ==========

    @classmethod
    def create(cls, db: DbHandle, data: Any = None, **values: Any) -> Any:
        """
        插入一行

        Args:
            db: ConnectionManager 或 Connection
            data: 映射、dataclass 或带 to_dict() 的对象
            values: 额外的列值（覆盖 data 中的同名列）

        Returns:
            新行的主键值

        Raises:
            SerializationError: 负载无法转换为列值映射
            DatabaseError: 驱动执行失败
        """
        payload = serialize_payload(data, values)
        if cls.__timestamps__:
            now = cls.fresh_timestamp()
            payload[CREATED_AT] = now
            payload[UPDATED_AT] = now

        event.dispatch(cls, 'before_insert', payload)
        payload = serialize_payload(payload)

        conn = cls._connection(db)
        table = cls.table_name()
        pk_column = cls.primary_key()

        if payload:
            columns = ', '.join(payload)
            placeholders = ', '.join('?' for _ in payload)
            sql = f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"
        else:
            sql = f"INSERT INTO {table} DEFAULT VALUES"
        params = list(payload.values())

        if conn.dialect.supports_returning:
            pk = conn.fetch_value(f"{sql} RETURNING {pk_column}", params)
        else:
            pk = conn.execute(sql, params).lastrowid
        if payload.get(pk_column) is not None:
            pk = payload[pk_column]

        event.dispatch(cls, 'after_insert', {**payload, pk_column: pk})
        return pk

    def update(self, db: DbHandle, data: Any = None, **values: Any) -> int:
        """
        更新当前行，并把新值同步到实例属性

        Returns:
            影响行数

        Raises:
            QueryError: 实例没有主键值
            SerializationError: 负载无法转换为列值映射
        """
        cls = type(self)
        self._require_pk('update')

        payload = serialize_payload(data, values)
        if cls.__timestamps__:
            payload[UPDATED_AT] = cls.fresh_timestamp()

        event.dispatch(cls, 'before_update', self, payload)
        payload = serialize_payload(payload)
        if not payload:
            return 0

        assignments = ', '.join(f"{column} = ?" for column in payload)
        sql = f"UPDATE {cls.table_name()} SET {assignments} WHERE {cls.primary_key()} = ?"
        result = cls._connection(db).execute(sql, [*payload.values(), self.pk])

        for column, value in payload.items():
            setattr(self, column, value)

        event.dispatch(cls, 'after_update', self, payload)
        return result.rowcount

    def delete(self, db: DbHandle) -> int:
        """
        删除当前行：启用软删除时写入 deleted_at，否则物理删除

        Returns:
            影响行数
        """
        cls = type(self)
        self._require_pk('delete')
        event.dispatch(cls, 'before_delete', self)

        if cls.__soft_deletes__:
            now = cls.fresh_timestamp()
            sql = f"UPDATE {cls.table_name()} SET {DELETED_AT} = ? WHERE {cls.primary_key()} = ?"
            affected = cls._connection(db).execute(sql, [now, self.pk]).rowcount
            setattr(self, DELETED_AT, now)
        else:
            affected = self._hard_delete(db)

        event.dispatch(cls, 'after_delete', self)
        return affected

    def force_delete(self, db: DbHandle) -> int:
        """无论是否启用软删除，都物理删除当前行"""
        cls = type(self)
        self._require_pk('force_delete')
        event.dispatch(cls, 'before_delete', self)
        affected = self._hard_delete(db)
        event.dispatch(cls, 'after_delete', self)
        return affected

    def restore(self, db: DbHandle) -> int:
        """
        恢复已软删除的行（未启用软删除时直接返回 0）

        Returns:
            影响行数
        """
        cls = type(self)
        if not cls.__soft_deletes__:
            return 0
        self._require_pk('restore')
        event.dispatch(cls, 'before_restore', self)

        sql = f"UPDATE {cls.table_name()} SET {DELETED_AT} = NULL WHERE {cls.primary_key()} = ?"
        affected = cls._connection(db).execute(sql, [self.pk]).rowcount
        setattr(self, DELETED_AT, None)

        event.dispatch(cls, 'after_restore', self)
        return affected

    def trashed(self) -> bool:
        """当前实例是否已被软删除"""
        return type(self).__soft_deletes__ and getattr(self, DELETED_AT, None) is not None

    def _hard_delete(self, db: DbHandle) -> int:
        cls = type(self)
        sql = f"DELETE FROM {cls.table_name()} WHERE {cls.primary_key()} = ?"
        return cls._connection(db).execute(sql, [self.pk]).rowcount

    def _require_pk(self, action: str) -> None:
        if self.pk is None:
            raise QueryError(
                f"Cannot {action} {type(self).__name__} without a '{self.primary_key()}' value"
            )

    @classmethod
    def _connection(cls, db: DbHandle) -> Connection:
        return resolve_connection(db, cls.connection_name())

    # ========== 关联关系 ==========

    def has_many(self, related: Type[R], foreign_key: str) -> Builder[R]:
        """
        一对多

        Example:
            user.has_many(Post, 'user_id').get(db)
        """
        return related.query().where_eq(foreign_key, self.pk)

    def has_one(self, related: Type[R], foreign_key: str) -> Builder[R]:
        """
        一对一（调用方取 first()）

        Example:
            user.has_one(Profile, 'user_id').first(db)
        """
        return related.query().where_eq(foreign_key, self.pk)

    @classmethod
    def belongs_to(cls, related: Type[R], db: DbHandle, foreign_key_value: Any) -> Optional[R]:
        """
        多对一：按外键值查找所属记录

        Example:
            Post.belongs_to(User, db, post.user_id)
        """
        return related.find(db, foreign_key_value)

    def belongs_to_many(
        self,
        related: Type[R],
        pivot_table: str,
        foreign_key: str,
        related_key: str,
    ) -> Builder[R]:
        """
        多对多（通过中间表）

        Example:
            user.belongs_to_many(Role, 'role_user', 'user_id', 'role_id')
            # SELECT roles.* FROM roles
            # INNER JOIN role_user ON roles.id = role_user.role_id
            # WHERE role_user.user_id = ?
        """
        related_table = related.table_name()
        return (
            related.query()
            .select(f"{related_table}.*")
            .join(
                pivot_table,
                f"{related_table}.{related.primary_key()}",
                '=',
                f"{pivot_table}.{related_key}",
            )
            .where_eq(f"{pivot_table}.{foreign_key}", self.pk)
        )

    def morph_one(self, related: Type[R], id_column: str, type_column: str) -> Builder[R]:
        """
        多态一对一

        Example:
            post.morph_one(Image, 'imageable_id', 'imageable_type').first(db)
        """
        return self._morph(related, id_column, type_column)

    def morph_many(self, related: Type[R], id_column: str, type_column: str) -> Builder[R]:
        """
        多态一对多：按外键 id 与类型鉴别列（值为当前表名）过滤

        Example:
            post.morph_many(Comment, 'commentable_id', 'commentable_type').get(db)
        """
        return self._morph(related, id_column, type_column)

    def _morph(self, related: Type[R], id_column: str, type_column: str) -> Builder[R]:
        return (
            related.query()
            .where_eq(id_column, self.pk)
            .where_eq(type_column, type(self).table_name())
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.primary_key()}={self.pk!r})"
