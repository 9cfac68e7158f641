"""
tucksql 配置选项 dataclass 定义

该模块定义了连接器与数据库连接的配置选项，替代零散的 **kwargs 参数。
"""
import os
from dataclasses import dataclass, field
from typing import Optional, Dict, Mapping


@dataclass(slots=True)
class SqliteConnectorOptions:
    """SQLite 连接器配置选项"""
    check_same_thread: bool = False  # 检查同一线程（Connection 自带锁，默认允许跨线程）
    timeout: Optional[float] = None  # 连接超时时间
    isolation_level: Optional[str] = None  # 引擎的事务隔离级别（如 'AUTOCOMMIT'，None 使用驱动默认）


@dataclass(slots=True)
class ConnectionConfig:
    """单个命名连接的配置"""
    url: str = ''  # 连接 URL，例如 sqlite:///app.db、sqlite::memory:、mysql+pymysql://user@host/db
    max_connections: int = 5  # 连接池大小（内存 SQLite 固定共享一个连接）
    options: SqliteConnectorOptions = field(default_factory=SqliteConnectorOptions)


@dataclass(slots=True)
class DatabaseConfig:
    """数据库配置：默认连接名 + 命名连接表"""
    default: str = 'sqlite'
    connections: Dict[str, ConnectionConfig] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'DatabaseConfig':
        """
        从环境变量构建配置

        读取的变量：
            DB_CONNECTION: 默认连接名（默认 'sqlite'）
            DATABASE_URL: 'mysql' 连接的 URL
            DB_SQLITE_URL: 'sqlite' 连接的 URL（默认 sqlite::memory:）
            DB_MAX_CONNECTIONS: 'mysql' 连接的最大连接数（默认 5）

        Args:
            environ: 环境变量映射，None 表示使用 os.environ

        Returns:
            DatabaseConfig 实例
        """
        env = os.environ if environ is None else environ

        try:
            max_connections = int(env.get('DB_MAX_CONNECTIONS', '5'))
        except ValueError:
            max_connections = 5

        connections = {
            'mysql': ConnectionConfig(
                url=env.get('DATABASE_URL', ''),
                max_connections=max_connections,
            ),
            'sqlite': ConnectionConfig(
                url=env.get('DB_SQLITE_URL', 'sqlite::memory:'),
                max_connections=1,
            ),
        }
        return cls(default=env.get('DB_CONNECTION', 'sqlite'), connections=connections)
