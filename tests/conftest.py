"""
Pytest 配置和共享 fixtures

此文件提供 pytest 测试所需的共享配置和 fixtures。
"""
import sys
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# 确保可以导入 tucksql
sys.path.insert(0, str(Path(__file__).parent.parent))

from tucksql import Connection, ConnectionManager, event


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    提供临时目录 fixture

    使用 TemporaryDirectory 确保测试隔离，
    测试结束后自动清理。

    Yields:
        临时目录的 Path 对象
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db() -> Generator[ConnectionManager, None, None]:
    """
    内存 SQLite 连接管理器（默认连接名 'default'）

    Yields:
        ConnectionManager 实例，测试结束后关闭
    """
    manager = ConnectionManager.from_url('sqlite::memory:')
    yield manager
    manager.close()


@pytest.fixture
def conn(db: ConnectionManager) -> Connection:
    """db fixture 的默认连接"""
    return db.connection()


@pytest.fixture(autouse=True)
def clear_events() -> Generator[None, None, None]:
    """每个测试前后清除所有事件监听器"""
    event.clear()
    yield
    event.clear()
