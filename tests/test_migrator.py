"""
迁移执行器测试

测试方法：
- 场景设计：建表迁移 -> run -> rollback 完整流程
- 边界值：重复 run、空目录、缺失文件
- 错误推断：失败的迁移中止后续迁移

覆盖范围：
- 迁移文件解析（单文件标记 / 成对文件）
- 批次记录与回滚顺序
- reset / status
"""

from pathlib import Path
from typing import Dict, List

import pytest

from tucksql import Connection, ConnectionManager, Migrator, MigrationError, Schema, SQLITE
from tucksql.schema.migrator import load_migrations, parse_migration


def table_names(conn: Connection) -> List[str]:
    rows = conn.fetch_all("SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name")
    return [r['name'] for r in rows if not r['name'].startswith('sqlite_')]


def write_pair(directory: Path, name: str, up: str, down: str) -> None:
    (directory / f'{name}.up.sql').write_text(up, encoding='utf-8')
    (directory / f'{name}.down.sql').write_text(down, encoding='utf-8')


def create_table_sql(table: str) -> str:
    return Schema.create(table, lambda t: (t.id(), t.timestamps()), SQLITE)


@pytest.fixture
def migrations_dir(temp_dir: Path) -> Path:
    path = temp_dir / 'migrations'
    path.mkdir()
    return path


class TestParseMigration:
    """单文件迁移解析测试"""

    def test_split_on_down_marker(self) -> None:
        up, down = parse_migration(
            '-- --- UP ---\n'
            'CREATE TABLE a (id INTEGER);\n'
            '-- --- DOWN ---\n'
            'DROP TABLE a;\n'
        )
        assert up == 'CREATE TABLE a (id INTEGER);'
        assert down == 'DROP TABLE a;'

    def test_no_marker_is_up_only(self) -> None:
        up, down = parse_migration('CREATE TABLE a (id INTEGER);\n')
        assert up == 'CREATE TABLE a (id INTEGER);'
        assert down == ''

    def test_marker_must_be_whole_line(self) -> None:
        """出现在语句中的标记文本不会被当作分隔符"""
        text = "INSERT INTO notes (body) VALUES ('-- --- DOWN --- inline');\n"
        up, down = parse_migration(text)
        assert up == text.strip()
        assert down == ''


class TestLoadMigrations:
    """迁移文件加载测试"""

    def test_missing_directory(self, temp_dir: Path) -> None:
        assert load_migrations(temp_dir / 'nowhere') == []

    def test_sorted_and_both_formats(self, migrations_dir: Path) -> None:
        write_pair(migrations_dir, '20260102000000_create_b', 'UP B', 'DOWN B')
        (migrations_dir / '20260101000000_create_a.sql').write_text(
            'UP A\n-- --- DOWN ---\nDOWN A\n', encoding='utf-8'
        )
        (migrations_dir / 'README.md').write_text('ignored', encoding='utf-8')

        units = load_migrations(migrations_dir)

        assert [u.name for u in units] == ['20260101000000_create_a', '20260102000000_create_b']
        assert (units[0].up, units[0].down) == ('UP A', 'DOWN A')
        assert (units[1].up, units[1].down) == ('UP B', 'DOWN B')

    def test_up_without_down_file(self, migrations_dir: Path) -> None:
        (migrations_dir / '20260101000000_seed.up.sql').write_text('UP', encoding='utf-8')
        assert load_migrations(migrations_dir)[0].down == ''

    def test_duplicate_name(self, migrations_dir: Path) -> None:
        write_pair(migrations_dir, '20260101000000_create_a', 'UP', 'DOWN')
        (migrations_dir / '20260101000000_create_a.sql').write_text('UP', encoding='utf-8')

        with pytest.raises(MigrationError):
            load_migrations(migrations_dir)

    def test_path_is_a_file(self, temp_dir: Path) -> None:
        path = temp_dir / 'not_a_dir'
        path.write_text('', encoding='utf-8')
        with pytest.raises(MigrationError):
            load_migrations(path)


class TestMigratorRun:
    """run / rollback 场景测试"""

    def test_create_posts_scenario(self, db: ConnectionManager, migrations_dir: Path) -> None:
        """建表迁移：run 记录一行 batch 1，rollback 后记录清空且表被删除"""
        write_pair(
            migrations_dir,
            '20260101000000_create_posts_table',
            create_table_sql('posts'),
            Schema.drop_if_exists('posts'),
        )
        conn = db.connection()
        migrator = Migrator(db, migrations_dir)

        assert migrator.run() == ['20260101000000_create_posts_table']
        assert 'posts' in table_names(conn)
        rows = conn.fetch_all('SELECT migration, batch FROM migrations')
        assert rows == [{'migration': '20260101000000_create_posts_table', 'batch': 1}]

        assert migrator.rollback() == ['20260101000000_create_posts_table']
        assert conn.fetch_value('SELECT COUNT(*) FROM migrations') == 0
        assert 'posts' not in table_names(conn)

    def test_run_twice_is_noop(self, db: ConnectionManager, migrations_dir: Path) -> None:
        write_pair(migrations_dir, '20260101000000_create_a', create_table_sql('a'), 'DROP TABLE a;')
        migrator = Migrator(db, migrations_dir)

        migrator.run()
        assert migrator.run() == []
        assert db.connection().fetch_value('SELECT COUNT(*) FROM migrations') == 1

    def test_batches(self, db: ConnectionManager, migrations_dir: Path) -> None:
        """每次 run 的迁移记入新批次"""
        write_pair(migrations_dir, '20260101000000_create_a', create_table_sql('a'), 'DROP TABLE a;')
        write_pair(migrations_dir, '20260101000001_create_b', create_table_sql('b'), 'DROP TABLE b;')
        migrator = Migrator(db, migrations_dir)
        migrator.run()

        write_pair(migrations_dir, '20260102000000_create_c', create_table_sql('c'), 'DROP TABLE c;')
        assert migrator.run() == ['20260102000000_create_c']

        batches: Dict[str, int] = {r.migration: r.batch for r in migrator.records()}
        assert batches == {
            '20260101000000_create_a': 1,
            '20260101000001_create_b': 1,
            '20260102000000_create_c': 2,
        }
        assert migrator.last_batch() == 2

    def test_rollback_only_highest_batch(self, db: ConnectionManager, migrations_dir: Path) -> None:
        write_pair(migrations_dir, '20260101000000_create_a', create_table_sql('a'), 'DROP TABLE a;')
        migrator = Migrator(db, migrations_dir)
        migrator.run()
        write_pair(migrations_dir, '20260102000000_create_b', create_table_sql('b'), 'DROP TABLE b;')
        write_pair(migrations_dir, '20260102000001_create_c', create_table_sql('c'), 'DROP TABLE c;')
        migrator.run()

        # 同一批次内按应用顺序的逆序回滚
        assert migrator.rollback() == ['20260102000001_create_c', '20260102000000_create_b']
        assert migrator.ran() == ['20260101000000_create_a']
        assert table_names(db.connection()) == ['a', 'migrations']

    def test_rollback_nothing(self, db: ConnectionManager, migrations_dir: Path) -> None:
        assert Migrator(db, migrations_dir).rollback() == []

    def test_rollback_missing_file(
        self, db: ConnectionManager, migrations_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """记录存在但文件缺失时记录警告并删除记录"""
        write_pair(migrations_dir, '20260101000000_create_a', create_table_sql('a'), 'DROP TABLE a;')
        migrator = Migrator(db, migrations_dir)
        migrator.run()
        (migrations_dir / '20260101000000_create_a.up.sql').unlink()
        (migrations_dir / '20260101000000_create_a.down.sql').unlink()

        with caplog.at_level('WARNING', logger='tucksql'):
            assert migrator.rollback() == ['20260101000000_create_a']

        assert 'not found' in caplog.text
        assert migrator.ran() == []
        # DOWN 没有执行，表仍然存在
        assert 'a' in table_names(db.connection())

    def test_single_file_format(self, db: ConnectionManager, migrations_dir: Path) -> None:
        (migrations_dir / '20260101000000_create_notes.sql').write_text(
            '-- --- UP ---\n'
            'CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT);\n'
            "INSERT INTO notes (body) VALUES ('first; note');\n"
            '-- --- DOWN ---\n'
            'DROP TABLE notes;\n',
            encoding='utf-8',
        )
        migrator = Migrator(db, migrations_dir)
        conn = db.connection()

        migrator.run()
        assert conn.fetch_value('SELECT body FROM notes') == 'first; note'

        migrator.rollback()
        assert 'notes' not in table_names(conn)

    def test_failure_is_fail_fast(self, db: ConnectionManager, migrations_dir: Path) -> None:
        """失败的迁移抛出 MigrationError，之后的迁移不执行也不记录"""
        write_pair(migrations_dir, '20260101000000_create_a', create_table_sql('a'), 'DROP TABLE a;')
        write_pair(migrations_dir, '20260101000001_broken', 'CREATE TABLE oops (', '')
        write_pair(migrations_dir, '20260101000002_create_c', create_table_sql('c'), 'DROP TABLE c;')
        migrator = Migrator(db, migrations_dir)

        with pytest.raises(MigrationError) as exc_info:
            migrator.run()

        assert exc_info.value.migration == '20260101000001_broken'
        assert exc_info.value.__cause__ is not None
        assert migrator.ran() == ['20260101000000_create_a']
        assert 'c' not in table_names(db.connection())

    def test_migration_logging(
        self, db: ConnectionManager, migrations_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        write_pair(migrations_dir, '20260101000000_create_a', create_table_sql('a'), 'DROP TABLE a;')

        with caplog.at_level('INFO', logger='tucksql'):
            Migrator(db, migrations_dir).run()

        assert 'Migrating: 20260101000000_create_a' in caplog.text
        assert 'Migrated:  20260101000000_create_a' in caplog.text


class TestMigratorStatus:
    """reset / status / pending 测试"""

    def test_reset_rolls_back_every_batch(self, db: ConnectionManager, migrations_dir: Path) -> None:
        write_pair(migrations_dir, '20260101000000_create_a', create_table_sql('a'), 'DROP TABLE a;')
        migrator = Migrator(db, migrations_dir)
        migrator.run()
        write_pair(migrations_dir, '20260102000000_create_b', create_table_sql('b'), 'DROP TABLE b;')
        migrator.run()

        assert migrator.reset() == ['20260102000000_create_b', '20260101000000_create_a']
        assert migrator.ran() == []
        assert table_names(db.connection()) == ['migrations']

    def test_status_and_pending(self, db: ConnectionManager, migrations_dir: Path) -> None:
        write_pair(migrations_dir, '20260101000000_create_a', create_table_sql('a'), 'DROP TABLE a;')
        migrator = Migrator(db, migrations_dir)
        migrator.run()
        write_pair(migrations_dir, '20260102000000_create_b', create_table_sql('b'), 'DROP TABLE b;')

        assert [m.name for m in migrator.pending()] == ['20260102000000_create_b']
        assert migrator.status() == [
            ('20260101000000_create_a', 1),
            ('20260102000000_create_b', None),
        ]

    def test_named_connection(self, migrations_dir: Path) -> None:
        """connection 参数指定使用的命名连接"""
        manager = ConnectionManager(default='main')
        manager.add('main', Connection.from_url('sqlite::memory:', 'main'))
        manager.add('audit', Connection.from_url('sqlite::memory:', 'audit'))
        write_pair(migrations_dir, '20260101000000_create_a', create_table_sql('a'), 'DROP TABLE a;')

        Migrator(manager, migrations_dir, connection='audit').run()

        assert 'a' in table_names(manager.connection('audit'))
        assert 'a' not in table_names(manager.connection('main'))
        manager.close()

    def test_migration_table_schema(self, db: ConnectionManager, migrations_dir: Path) -> None:
        """ensure_migration_table 可重复调用"""
        migrator = Migrator(db, migrations_dir)
        migrator.ensure_migration_table()
        migrator.ensure_migration_table()

        columns = [r['name'] for r in db.connection().fetch_all('PRAGMA table_info(migrations)')]
        assert columns == ['id', 'migration', 'batch']
