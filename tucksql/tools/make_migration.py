"""
tucksql 迁移文件生成工具

生成成对的迁移文件：
    migrations/20260101120000_create_posts_table.up.sql
    migrations/20260101120000_create_posts_table.down.sql

模板：建表（create）、加列（table + add）、修改表（table）、空白
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..common.utils import to_snake_case
from ..query.compiler import SQLDialect, GENERIC
from ..schema.blueprint import Blueprint, Schema
from ..schema.migrator import DOWN_SUFFIX, UP_SUFFIX, load_migrations

STAMP_FORMAT = '%Y%m%d%H%M%S'


def _create_table_templates(table: str, dialect: SQLDialect) -> Tuple[str, str]:
    def columns(blueprint: Blueprint) -> None:
        blueprint.id()
        blueprint.timestamps()

    up = Schema.create(table, columns, dialect, if_not_exists=True)
    down = Schema.drop_if_exists(table)
    return up, down


def _add_columns_templates(table: str, dialect: SQLDialect) -> Tuple[str, str]:
    string_type = dialect.column_type('string')
    integer_type = dialect.column_type('integer')
    up = '\n'.join([
        f"-- Add columns to: {table}",
        '-- Uncomment and modify as needed',
        '',
        f"-- ALTER TABLE {table} ADD COLUMN column_name {string_type} NULL;",
        f"-- ALTER TABLE {table} ADD COLUMN another_column {integer_type} DEFAULT 0;",
        f"-- CREATE INDEX idx_{table}_column_name ON {table} (column_name);",
    ])
    down = '\n'.join([
        f"-- Drop the columns added to: {table}",
        '',
        f"-- DROP INDEX idx_{table}_column_name;",
        f"-- ALTER TABLE {table} DROP COLUMN another_column;",
        f"-- ALTER TABLE {table} DROP COLUMN column_name;",
    ])
    return up, down


def _modify_table_templates(table: str, dialect: SQLDialect) -> Tuple[str, str]:
    up = '\n'.join([
        f"-- Modify table: {table}",
        '-- Uncomment and modify as needed',
        '',
        '-- Rename column:',
        f"-- ALTER TABLE {table} RENAME COLUMN old_name TO new_name;",
        '',
        '-- Drop column:',
        f"-- ALTER TABLE {table} DROP COLUMN column_name;",
        '',
        '-- Add index:',
        f"-- CREATE INDEX idx_{table}_column_name ON {table} (column_name);",
        '',
        '-- Add unique index:',
        f"-- CREATE UNIQUE INDEX uniq_{table}_email ON {table} (email);",
    ])
    down = '\n'.join([
        f"-- Reverse the changes to: {table}",
        '',
        f"-- ALTER TABLE {table} RENAME COLUMN new_name TO old_name;",
        f"-- ALTER TABLE {table} ADD COLUMN column_name {dialect.column_type('string')} NULL;",
        f"-- DROP INDEX idx_{table}_column_name;",
        f"-- DROP INDEX uniq_{table}_email;",
    ])
    return up, down


def make_migration(
    name: str,
    directory: Union[str, Path] = 'migrations',
    create: Optional[str] = None,
    dialect: SQLDialect = GENERIC,
    now: Optional[datetime] = None,
    table: Optional[str] = None,
    add: bool = False,
) -> Tuple[Path, Path]:
    """
    生成迁移文件对

    模板选择：create 优先生成建表 / 删表模板；否则给出 table 时
    生成 ALTER TABLE 示例（add 为 True 时是加列模板，否则是修改表模板）；
    都没有时生成空白模板。

    Example:
        make_migration('add_avatar_to_users', table='users', add=True)

    Args:
        name: 迁移名（会转换为 snake_case）
        directory: 迁移目录（不存在时创建）
        create: 要创建的表名
        dialect: 模板使用的 SQL 方言
        now: 时间戳使用的时间，默认当前时间
        table: 要修改的表名
        add: 与 table 一起使用，生成加列模板

    Returns:
        (up 文件路径, down 文件路径)

    Raises:
        FileExistsError: 同名迁移已存在
        ValueError: 给出 add 但没有 table
    """
    if add and not table and not create:
        raise ValueError("The add-columns template requires a table name")

    stamp = (now or datetime.now()).strftime(STAMP_FORMAT)
    migration = f"{stamp}_{to_snake_case(name)}"

    folder = Path(directory)
    folder.mkdir(parents=True, exist_ok=True)
    up_path = folder / f"{migration}{UP_SUFFIX}"
    down_path = folder / f"{migration}{DOWN_SUFFIX}"
    if up_path.exists() or down_path.exists():
        raise FileExistsError(f"Migration already exists: {up_path}")

    header = f"-- Migration: {migration}\n\n"
    if create:
        up, down = _create_table_templates(create, dialect)
    elif table and add:
        up, down = _add_columns_templates(table, dialect)
    elif table:
        up, down = _modify_table_templates(table, dialect)
    else:
        up, down = '-- Write your migration SQL here', '-- Reverse the migration here'

    up_path.write_text(header + up + '\n', encoding='utf-8')
    down_path.write_text(header + down + '\n', encoding='utf-8')
    return up_path, down_path


def list_migrations(directory: Union[str, Path] = 'migrations') -> List[str]:
    """返回目录中的迁移名（已排序，不需要数据库连接）"""
    return [m.name for m in load_migrations(directory)]
