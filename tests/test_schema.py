"""
表结构 DSL 测试

覆盖范围：
- 列定义与修饰方法
- 各方言的 CREATE TABLE 渲染
- 蓝图校验（无列、重复列）
- 在 SQLite 上执行生成的 DDL
"""

import pytest

from tucksql import Blueprint, Connection, Schema, SchemaError, GENERIC, SQLITE, MYSQL, POSTGRESQL
from tucksql.schema.blueprint import ColumnDefinition, quote_literal


def posts_table(table: Blueprint) -> None:
    table.id()
    table.string('title')
    table.text('body').nullable()
    table.timestamps()


class TestColumnDefinition:
    """列定义测试"""

    def test_defaults_to_not_null(self) -> None:
        assert ColumnDefinition('name', 'string').to_sql() == 'name VARCHAR(255) NOT NULL'

    def test_modifiers_chain(self) -> None:
        column = ColumnDefinition('email', 'string').nullable().unique()
        assert column.to_sql() == 'email VARCHAR(255) UNIQUE'

    def test_default_literal(self) -> None:
        assert ColumnDefinition('active', 'boolean').default(True).to_sql() == (
            'active BOOLEAN NOT NULL DEFAULT TRUE'
        )
        assert ColumnDefinition('role', 'string').default("o'neil").to_sql() == (
            "role VARCHAR(255) NOT NULL DEFAULT 'o''neil'"
        )
        assert ColumnDefinition('score', 'integer').default(0).to_sql(SQLITE) == (
            'score INTEGER NOT NULL DEFAULT 0'
        )

    def test_default_raw(self) -> None:
        column = ColumnDefinition('seen_at', 'timestamp').default_raw('CURRENT_TIMESTAMP')
        assert column.to_sql() == 'seen_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP'

    @pytest.mark.parametrize('value,expected', [
        (None, 'NULL'),
        (False, 'FALSE'),
        (42, '42'),
        (1.5, '1.5'),
        ('text', "'text'"),
    ])
    def test_quote_literal(self, value: object, expected: str) -> None:
        assert quote_literal(value) == expected


class TestBlueprint:
    """蓝图测试"""

    def test_id_records_primary_key(self) -> None:
        blueprint = Blueprint('posts')
        blueprint.id()
        assert blueprint.primary_key == 'id'

    def test_column_order(self) -> None:
        blueprint = Blueprint('posts')
        posts_table(blueprint)
        assert [c.name for c in blueprint.columns] == ['id', 'title', 'body', 'created_at', 'updated_at']

    def test_no_columns(self) -> None:
        with pytest.raises(SchemaError):
            Blueprint('empty').to_sql()

    def test_duplicate_column(self) -> None:
        blueprint = Blueprint('users')
        blueprint.string('email')
        with pytest.raises(SchemaError) as exc_info:
            blueprint.string('email')
        assert "Duplicate column 'email'" in str(exc_info.value)

    def test_custom_string_length(self) -> None:
        blueprint = Blueprint('users')
        blueprint.string('code', 16)
        assert 'code VARCHAR(16) NOT NULL' in blueprint.to_sql()

    def test_soft_deletes_nullable(self) -> None:
        blueprint = Blueprint('posts')
        blueprint.soft_deletes()
        assert blueprint.columns[0].to_sql(SQLITE) == 'deleted_at DATETIME'


class TestSchemaCreate:
    """CREATE TABLE 渲染测试"""

    def test_generic(self) -> None:
        assert Schema.create('posts', posts_table) == (
            'CREATE TABLE posts (\n'
            '    id BIGINT NOT NULL AUTO_INCREMENT,\n'
            '    title VARCHAR(255) NOT NULL,\n'
            '    body TEXT,\n'
            '    created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,\n'
            '    updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,\n'
            '    PRIMARY KEY (id)\n'
            ');'
        )

    def test_mysql_matches_generic(self) -> None:
        assert Schema.create('posts', posts_table, MYSQL) == Schema.create('posts', posts_table, GENERIC)

    def test_sqlite(self) -> None:
        sql = Schema.create('posts', posts_table, SQLITE, if_not_exists=True)

        assert sql.startswith('CREATE TABLE IF NOT EXISTS posts (\n    id INTEGER,\n')
        assert 'updated_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,' in sql
        assert 'AUTO_INCREMENT' not in sql

    def test_postgresql(self) -> None:
        sql = Schema.create('posts', posts_table, POSTGRESQL)

        assert '    id BIGSERIAL NOT NULL,\n' in sql
        assert 'created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP' in sql
        assert 'ON UPDATE' not in sql

    def test_drop(self) -> None:
        assert Schema.drop('posts') == 'DROP TABLE posts;'
        assert Schema.drop_if_exists('posts') == 'DROP TABLE IF EXISTS posts;'


class TestSchemaOnSqlite:
    """在 SQLite 上执行生成的 DDL"""

    def test_auto_increment_and_defaults(self, conn: Connection) -> None:
        conn.execute_script(Schema.create('posts', lambda t: (
            t.id(),
            t.string('title'),
            t.boolean('published').default(False),
            t.timestamps(),
        ), SQLITE))

        first = conn.execute('INSERT INTO posts (title) VALUES (?)', ['Hello']).lastrowid
        second = conn.execute('INSERT INTO posts (title) VALUES (?)', ['World']).lastrowid
        row = conn.fetch_one('SELECT * FROM posts WHERE id = ?', [second])

        assert (first, second) == (1, 2)
        assert row is not None
        assert row['published'] == 0
        assert row['created_at'] is not None

    def test_unique_enforced(self, conn: Connection) -> None:
        from tucksql import DatabaseError

        conn.execute_script(Schema.create('users', lambda t: (
            t.id(), t.string('email').unique(),
        ), SQLITE))
        conn.execute('INSERT INTO users (email) VALUES (?)', ['a@x.com'])
        with pytest.raises(DatabaseError):
            conn.execute('INSERT INTO users (email) VALUES (?)', ['a@x.com'])

    def test_if_not_exists_is_repeatable(self, conn: Connection) -> None:
        ddl = Schema.create('tags', lambda t: (t.id(), t.string('label')), SQLITE, if_not_exists=True)
        conn.execute_script(ddl)
        conn.execute_script(ddl)
        conn.execute_script(Schema.drop_if_exists('tags'))
        conn.execute_script(Schema.drop_if_exists('tags'))
