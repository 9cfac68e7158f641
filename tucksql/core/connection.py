"""
tucksql 连接管理

- create_engine_for: 把连接 URL 与 ConnectionConfig 转换为 SQLAlchemy Engine（驱动选择与连接池）
- Connection: 对 Engine 的封装，负责占位符转换、错误转换、行解码与事务
- ConnectionManager: 命名连接表，启动时填充，之后只读
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generator, Iterator, List, Optional, Sequence

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, CursorResult, Engine, make_url
from sqlalchemy.exc import ArgumentError, DBAPIError, NoSuchModuleError
from sqlalchemy.pool import StaticPool

from ..common.exceptions import ConfigurationError, DatabaseError, TransactionError
from ..common.options import ConnectionConfig, DatabaseConfig
from ..common.utils import split_sql_statements
from ..query.compiler import SQLDialect, convert_placeholders, dialect_for

logger = logging.getLogger('tucksql')

Row = Dict[str, Any]


# ========== URL 与引擎 ==========

def sqlite_database_path(url: str) -> str:
    """
    解析 sqlite URL 中的数据库路径

    sqlite::memory: / sqlite://:memory: / sqlite:///:memory: -> ':memory:'
    sqlite:///relative.db -> 'relative.db'
    sqlite:////abs/path.db -> '/abs/path.db'
    """
    rest = url.split(':', 1)[1]
    if rest.startswith('//'):
        rest = rest[2:]
        if rest.startswith('/'):
            rest = rest[1:]
    if rest in ('', ':memory:'):
        return ':memory:'
    return rest


def is_memory_url(url: str) -> bool:
    """URL 是否指向 SQLite 内存数据库"""
    scheme = url.partition(':')[0].lower().split('+', 1)[0]
    return scheme == 'sqlite' and sqlite_database_path(url) == ':memory:'


def to_sqlalchemy_url(url: str) -> URL:
    """
    把连接 URL 转换为 SQLAlchemy URL

    额外接受 `sqlite::memory:` 简写；其余 URL 按 SQLAlchemy 规则解析，
    'mysql+pymysql://…' 之类的写法用于指定驱动。

    Raises:
        ConfigurationError: URL 无法解析
    """
    scheme, sep, _ = url.partition(':')
    if not sep or not scheme:
        raise ConfigurationError(f"Invalid database URL: '{url}'")

    if scheme.lower().split('+', 1)[0] == 'sqlite':
        path = sqlite_database_path(url)
        return URL.create(scheme, database=None if path == ':memory:' else path)

    try:
        return make_url(url)
    except ArgumentError as e:
        raise ConfigurationError(f"Invalid database URL: '{url}'") from e


def create_engine_for(url: str, config: Optional[ConnectionConfig] = None) -> Engine:
    """
    创建 SQLAlchemy Engine

    - 内存 SQLite 使用 StaticPool（所有线程共享同一个连接，否则每个连接都是一个空库）
    - 其他数据库使用 QueuePool，pool_size 取 config.max_connections

    Example:
        engine = create_engine_for('sqlite:///app.db', ConnectionConfig(max_connections=3))

    Raises:
        ConfigurationError: URL 无法解析或驱动未安装
    """
    if config is None:
        config = ConnectionConfig(url=url)
    options = config.options
    sa_url = to_sqlalchemy_url(url)

    kwargs: Dict[str, Any] = {}
    if options.isolation_level is not None:
        kwargs['isolation_level'] = options.isolation_level

    if sa_url.get_backend_name() == 'sqlite':
        connect_args: Dict[str, Any] = {'check_same_thread': options.check_same_thread}
        if options.timeout is not None:
            connect_args['timeout'] = options.timeout
        kwargs['connect_args'] = connect_args
        if sa_url.database in (None, '', ':memory:'):
            kwargs['poolclass'] = StaticPool
        else:
            kwargs['pool_size'] = config.max_connections
    else:
        kwargs['pool_size'] = config.max_connections
        kwargs['pool_pre_ping'] = True

    try:
        return create_engine(sa_url, **kwargs)
    except (ArgumentError, NoSuchModuleError, ImportError) as e:
        raise ConfigurationError(
            f"Cannot create engine for '{sa_url.render_as_string(hide_password=True)}': {e}"
        ) from e


# ========== 连接 ==========

@dataclass(frozen=True)
class ExecuteResult:
    """写语句执行结果"""
    rowcount: int
    lastrowid: Optional[Any] = None


class Connection:
    """
    数据库连接

    所有方法接受 `?` 占位符的 SQL，执行前转换为驱动的参数风格。
    对引擎的访问由可重入锁串行化，可在线程间共享。
    """

    def __init__(self, engine: Engine, name: str = 'default', dialect: Optional[SQLDialect] = None):
        """
        Args:
            engine: SQLAlchemy Engine
            name: 连接名（仅用于日志）
            dialect: SQL 方言，None 表示按引擎后端选择
        """
        self.engine = engine
        self.name = name
        self.dialect = dialect if dialect is not None else dialect_for(engine.dialect.name)
        self._lock = threading.RLock()
        self._tx: Optional[Any] = None
        self._closed = False

    @classmethod
    def from_url(
        cls,
        url: str,
        name: str = 'default',
        config: Optional[ConnectionConfig] = None,
    ) -> 'Connection':
        """
        根据 URL 打开连接（立即建立一次连接以校验配置）

        Example:
            conn = Connection.from_url('sqlite::memory:')

        Raises:
            ConfigurationError: URL 无法解析或驱动未安装
            DatabaseError: 连接失败
        """
        engine = create_engine_for(url, config)
        try:
            with engine.connect():
                pass
        except DBAPIError as e:
            engine.dispose()
            raise DatabaseError(f"Failed to connect to '{name}': {e.orig}") from e.orig
        return cls(engine, name)

    # ========== 执行 ==========

    def execute(self, sql: str, params: Sequence[Any] = ()) -> ExecuteResult:
        """执行写语句，返回影响行数与最后插入的行 id"""
        with self._result(sql, params) as result:
            return ExecuteResult(result.rowcount, result.lastrowid)

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        """执行查询，返回全部行（字典）"""
        with self._result(sql, params) as result:
            columns = list(result.keys())
            return [self._row_dict(columns, row) for row in result.fetchall()]

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        """执行查询，返回第一行或 None"""
        with self._result(sql, params) as result:
            row = result.fetchone()
            if row is None:
                return None
            return self._row_dict(list(result.keys()), row)

    def fetch_value(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """执行查询，返回第一行第一列的值或 None"""
        with self._result(sql, params) as result:
            row = result.fetchone()
            return row[0] if row is not None else None

    def execute_script(self, script: str) -> None:
        """
        执行多条语句组成的脚本（DDL / 迁移）

        按分号拆分后在同一个连接上逐条执行，语句不做占位符转换。
        不在事务中时整段脚本结束后提交。
        """
        statements = split_sql_statements(script)
        if not statements:
            return
        logger.debug("[%s] script: %s", self.name, script)
        no_params = {'no_parameters': True}
        with self._lock:
            try:
                if self._tx is not None:
                    for statement in statements:
                        self._tx.exec_driver_sql(statement, execution_options=no_params)
                    return
                with self.engine.connect() as conn:
                    for statement in statements:
                        conn.exec_driver_sql(statement, execution_options=no_params)
                    conn.commit()
            except DBAPIError as e:
                raise DatabaseError(str(e.orig), sql=script) from e.orig

    @contextmanager
    def transaction(self) -> Generator['Connection', None, None]:
        """
        事务上下文管理器

        - 正常退出时提交，异常时回滚并重新抛出
        - 不支持嵌套
        - 事务期间其他线程对该连接的访问会被阻塞

        Raises:
            TransactionError: 尝试嵌套事务时
        """
        with self._lock:
            if self._tx is not None:
                raise TransactionError("Nested transactions are not supported")
            try:
                with self.engine.begin() as conn:
                    self._tx = conn
                    yield self
            finally:
                self._tx = None

    @property
    def in_transaction(self) -> bool:
        return self._tx is not None

    def close(self) -> None:
        """释放连接池（重复调用无副作用）"""
        with self._lock:
            if not self._closed:
                self.engine.dispose()
                self._closed = True

    # ========== 内部 ==========

    @contextmanager
    def _result(self, sql: str, params: Sequence[Any]) -> Iterator[CursorResult]:
        params = tuple(params)
        native = convert_placeholders(sql, self.engine.dialect.paramstyle)
        logger.debug("[%s] %s %r", self.name, sql, params)
        with self._lock:
            try:
                if self._tx is not None:
                    yield self._tx.exec_driver_sql(native, params)
                else:
                    with self.engine.connect() as conn:
                        yield conn.exec_driver_sql(native, params)
                        conn.commit()
            except DBAPIError as e:
                raise DatabaseError(str(e.orig), sql=sql) from e.orig

    @staticmethod
    def _row_dict(columns: List[str], row: Sequence[Any]) -> Row:
        # JOIN 出现同名列时保留第一个（主表的列）
        data: Row = {}
        for column, value in zip(columns, row):
            data.setdefault(column, value)
        return data

    def __repr__(self) -> str:
        return f"Connection(name='{self.name}', dialect='{self.dialect.name}')"


def resolve_connection(db: Any, name: Optional[str] = None) -> Connection:
    """
    把 db 参数解析为 Connection

    Args:
        db: Connection 本身，或提供 connection(name) 方法的对象（ConnectionManager）
        name: 连接名，None 表示默认连接
    """
    if isinstance(db, Connection):
        return db
    return db.connection(name)


# ========== 连接管理器 ==========

class ConnectionManager:
    """
    命名连接表

    启动阶段通过 add() / from_config() 填充，之后只读，可被多个线程并发读取。
    Entity 与 Builder 的终结方法通过 connection(name) 解析连接。
    """

    def __init__(self, default: str = 'default'):
        """
        Args:
            default: 默认连接名
        """
        self.default = default
        self._connections: Dict[str, Connection] = {}

    @classmethod
    def from_url(cls, url: str, name: str = 'default') -> 'ConnectionManager':
        """
        以单个连接创建管理器

        Example:
            db = ConnectionManager.from_url('sqlite::memory:')
        """
        manager = cls(default=name)
        manager.add(name, Connection.from_url(url, name))
        return manager

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> 'ConnectionManager':
        """
        根据配置建立所有命名连接

        未配置 URL 或连接失败的条目会记录警告并跳过。
        """
        manager = cls(default=config.default)
        for name, conn_config in config.connections.items():
            if not conn_config.url:
                logger.warning("Database connection '%s' has no URL configured. Skipping.", name)
                continue
            try:
                connection = Connection.from_url(conn_config.url, name, conn_config)
            except (ConfigurationError, DatabaseError) as e:
                logger.warning("Failed to connect to database '%s': %s. Skipping.", name, e)
                continue
            manager.add(name, connection)
            logger.info("Database connection '%s' established", name)
        return manager

    def add(self, name: str, connection: Connection) -> None:
        """注册命名连接"""
        self._connections[name] = connection

    def connection(self, name: Optional[str] = None) -> Connection:
        """
        解析连接

        Args:
            name: 连接名，None 表示默认连接

        Raises:
            ConfigurationError: 连接不存在
        """
        key = self.default if name is None else name
        try:
            return self._connections[key]
        except KeyError:
            raise ConfigurationError(f"No database connection found for '{key}'") from None

    resolve = connection

    def default_connection(self) -> Connection:
        return self.connection(None)

    def names(self) -> List[str]:
        return list(self._connections)

    def close(self) -> None:
        """关闭所有连接"""
        for connection in self._connections.values():
            connection.close()

    def __contains__(self, name: object) -> bool:
        return name in self._connections

    def __enter__(self) -> 'ConnectionManager':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ConnectionManager(default='{self.default}', connections={self.names()})"
