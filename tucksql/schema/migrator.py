"""
tucksql 迁移执行器

迁移目录中的 SQL 文件按文件名排序后依次执行，执行记录保存在 migrations 表中：

    migrations(id 自增主键, migration 唯一, batch 整数)

支持两种文件格式：
- 成对文件：<timestamp>_<name>.up.sql / <timestamp>_<name>.down.sql
- 单文件：<timestamp>_<name>.sql，以单独一行 `-- --- DOWN ---` 分隔 UP 与 DOWN 部分
  （可选的 `-- --- UP ---` 行会被去掉，没有 DOWN 标记时只有 UP 部分）

每次 run() 把所有未执行的迁移记入同一批次（当前最大批次 + 1），
rollback() 按应用顺序的逆序回滚最大批次。

注意：没有迁移锁，不要并发运行多个 Migrator。
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from ..common.exceptions import DatabaseError, MigrationError
from ..core.connection import Connection, resolve_connection
from .blueprint import Blueprint

logger = logging.getLogger('tucksql')

UP_MARKER = '-- --- UP ---'
DOWN_MARKER = '-- --- DOWN ---'

UP_SUFFIX = '.up.sql'
DOWN_SUFFIX = '.down.sql'


@dataclass(slots=True)
class MigrationRecord:
    """migrations 表中的一行"""
    id: int
    migration: str
    batch: int


@dataclass(slots=True)
class MigrationFile:
    """从磁盘加载的迁移单元"""
    name: str
    up: str
    down: str
    path: Path


def parse_migration(text: str) -> Tuple[str, str]:
    """
    拆分单文件迁移

    Args:
        text: 文件内容

    Returns:
        (up, down)；没有 DOWN 标记时 down 为空字符串
    """
    up_lines: List[str] = []
    down_lines: List[str] = []
    target = up_lines
    for line in text.splitlines():
        marker = line.strip()
        if marker == DOWN_MARKER:
            target = down_lines
            continue
        if marker == UP_MARKER and target is up_lines:
            continue
        target.append(line)
    return '\n'.join(up_lines).strip(), '\n'.join(down_lines).strip()


def load_migrations(path: Union[str, Path]) -> List[MigrationFile]:
    """
    加载目录中的所有迁移，按名称排序

    目录不存在时返回空列表。只有 .down.sql 而没有 .up.sql 的文件会被忽略。

    Args:
        path: 迁移目录

    Returns:
        MigrationFile 列表

    Raises:
        MigrationError: 目录或文件无法读取、名称重复
    """
    folder = Path(path)
    if not folder.exists():
        return []

    units: Dict[str, MigrationFile] = {}
    try:
        files = sorted(p for p in folder.iterdir() if p.is_file() and p.suffix == '.sql')
        for file in files:
            filename = file.name
            if filename.endswith(DOWN_SUFFIX):
                continue
            if filename.endswith(UP_SUFFIX):
                name = filename[:-len(UP_SUFFIX)]
                down_file = file.with_name(name + DOWN_SUFFIX)
                up = file.read_text(encoding='utf-8').strip()
                down = down_file.read_text(encoding='utf-8').strip() if down_file.exists() else ''
            else:
                name = file.stem
                up, down = parse_migration(file.read_text(encoding='utf-8'))

            if name in units:
                raise MigrationError(f"Duplicate migration '{name}' in {folder}", name)
            units[name] = MigrationFile(name, up, down, file)
    except OSError as e:
        raise MigrationError(f"Cannot read migrations from {folder}: {e}") from e

    return [units[name] for name in sorted(units)]


class Migrator:
    """
    迁移执行器

    Example:
        migrator = Migrator(db, 'migrations')
        migrator.run()
        migrator.rollback()
    """

    def __init__(
        self,
        db: Any,
        path: Union[str, Path] = 'migrations',
        connection: Optional[str] = None,
        table: str = 'migrations',
    ):
        """
        Args:
            db: ConnectionManager 或 Connection
            path: 迁移目录
            connection: 连接名，None 表示默认连接
            table: 迁移记录表名
        """
        self.connection: Connection = resolve_connection(db, connection)
        self.path = Path(path)
        self.table = table

    # ========== 记录表 ==========

    def ensure_migration_table(self) -> None:
        """创建迁移记录表（已存在时不做任何事）"""
        blueprint = Blueprint(self.table)
        blueprint.id()
        blueprint.string('migration').unique()
        blueprint.integer('batch')
        self.connection.execute_script(
            blueprint.to_sql(self.connection.dialect, if_not_exists=True)
        )

    def records(self) -> List[MigrationRecord]:
        """按应用顺序返回所有执行记录"""
        self.ensure_migration_table()
        rows = self.connection.fetch_all(
            f"SELECT id, migration, batch FROM {self.table} ORDER BY batch ASC, id ASC"
        )
        return [MigrationRecord(int(r['id']), r['migration'], int(r['batch'])) for r in rows]

    def ran(self) -> List[str]:
        """已执行的迁移名"""
        return [record.migration for record in self.records()]

    def last_batch(self) -> int:
        """当前最大批次号，没有记录时为 0"""
        self.ensure_migration_table()
        value = self.connection.fetch_value(f"SELECT MAX(batch) FROM {self.table}")
        return int(value or 0)

    # ========== 迁移文件 ==========

    def load_migrations(self) -> List[MigrationFile]:
        """加载迁移目录中的所有迁移，按名称排序"""
        return load_migrations(self.path)

    def pending(self) -> List[MigrationFile]:
        """尚未执行的迁移"""
        ran = set(self.ran())
        return [m for m in self.load_migrations() if m.name not in ran]

    # ========== 执行 ==========

    def run(self) -> List[str]:
        """
        执行所有未执行的迁移，记入同一个新批次

        Returns:
            本次执行的迁移名（没有待执行迁移时为空列表）

        Raises:
            MigrationError: 任一迁移失败（其后的迁移不再执行）
        """
        migrations = self.pending()
        if not migrations:
            logger.info("Nothing to migrate.")
            return []

        batch = self.last_batch() + 1
        applied: List[str] = []
        for migration in migrations:
            logger.info("Migrating: %s", migration.name)
            self._execute(migration.name, migration.up, 'up')
            self.connection.execute(
                f"INSERT INTO {self.table} (migration, batch) VALUES (?, ?)",
                [migration.name, batch],
            )
            logger.info("Migrated:  %s", migration.name)
            applied.append(migration.name)
        return applied

    def rollback(self) -> List[str]:
        """
        回滚最大批次，按应用顺序的逆序执行 DOWN 部分并删除记录

        记录存在但文件缺失时记录警告并删除该记录。

        Returns:
            回滚的迁移名

        Raises:
            MigrationError: 任一回滚失败（其后的回滚不再执行）
        """
        batch = self.last_batch()
        if batch == 0:
            logger.info("Nothing to rollback.")
            return []

        rows = self.connection.fetch_all(
            f"SELECT migration FROM {self.table} WHERE batch = ? ORDER BY id DESC", [batch]
        )
        files = {m.name: m for m in self.load_migrations()}

        rolled_back: List[str] = []
        for row in rows:
            name = row['migration']
            migration = files.get(name)
            if migration is None:
                logger.warning("Migration '%s' not found in %s. Removing its record.", name, self.path)
            else:
                logger.info("Rolling back: %s", name)
                self._execute(name, migration.down, 'down')
            self.connection.execute(f"DELETE FROM {self.table} WHERE migration = ?", [name])
            logger.info("Rolled back:  %s", name)
            rolled_back.append(name)
        return rolled_back

    def reset(self) -> List[str]:
        """逐批回滚所有迁移"""
        rolled_back: List[str] = []
        while True:
            names = self.rollback()
            if not names:
                return rolled_back
            rolled_back.extend(names)

    def status(self) -> List[Tuple[str, Optional[int]]]:
        """
        迁移状态

        Returns:
            [(迁移名, 批次号或 None)]，按名称排序
        """
        batches = {record.migration: record.batch for record in self.records()}
        names = {m.name for m in self.load_migrations()} | set(batches)
        return [(name, batches.get(name)) for name in sorted(names)]

    def _execute(self, name: str, sql: str, direction: str) -> None:
        try:
            self.connection.execute_script(sql)
        except DatabaseError as e:
            raise MigrationError(f"Migration '{name}' ({direction}) failed: {e}", name) from e
