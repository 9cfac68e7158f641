"""tucksql 命令行工具（迁移与数据填充）"""

import importlib
import logging
import os
import sys
from pathlib import Path
from typing import Annotated, Optional

import typer

from .. import __version__
from ..common.exceptions import ConfigurationError, DatabaseError, MigrationError
from ..common.options import DatabaseConfig
from ..core.connection import ConnectionManager, is_memory_url
from ..query.compiler import get_dialect
from ..schema.migrator import Migrator
from ..schema.seeder import Seeder
from ..tools.make_migration import list_migrations, make_migration

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)

app = typer.Typer(
    name="tucksql",
    help="tucksql - migrations and seeding for tucksql projects.",
    no_args_is_help=True,
    add_completion=False,
)


class CliState:
    """全局选项"""

    def __init__(self, database_url: Optional[str] = None, path: Path = Path("migrations")):
        self.database_url = database_url
        self.path = path

    def connect(self) -> ConnectionManager:
        """
        按 --database-url 或环境变量配置建立连接

        目标是内存 SQLite 时拒绝执行（命令结束后所有改动都会丢失）。
        """
        config = None if self.database_url else DatabaseConfig.from_env()
        if config is None:
            url = self.database_url or ""
        else:
            default = config.connections.get(config.default)
            url = default.url if default is not None else ""
        if is_memory_url(url):
            typer.echo(
                f"Refusing to run against in-memory database '{url}': changes would be lost. "
                "Pass --database-url or set DB_SQLITE_URL to a file database.",
                err=True,
            )
            raise typer.Exit(1)

        try:
            if config is None:
                return ConnectionManager.from_url(url)
            return ConnectionManager.from_config(config)
        except (ConfigurationError, DatabaseError) as e:
            typer.echo(f"Connection failed: {e}", err=True)
            raise typer.Exit(1) from None


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"tucksql {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    database_url: Annotated[
        Optional[str],
        typer.Option(
            "--database-url",
            "-d",
            help="Database URL, e.g. sqlite:///app.db",
            envvar="TUCKSQL_DATABASE_URL",
        ),
    ] = None,
    path: Annotated[
        Path,
        typer.Option(
            "--path",
            "-p",
            help="Migrations directory",
            envvar="TUCKSQL_MIGRATIONS_PATH",
        ),
    ] = Path("migrations"),
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """tucksql - migrations and seeding for tucksql projects."""
    ctx.obj = CliState(database_url, path)


def _migrator(state: CliState, db: ConnectionManager) -> Migrator:
    try:
        return Migrator(db, state.path)
    except ConfigurationError as e:
        typer.echo(f"Connection failed: {e}", err=True)
        raise typer.Exit(1) from None


@app.command(name="migrate")
def migrate_cmd(ctx: typer.Context) -> None:
    """Run all pending migrations.

    Examples:
        tucksql --database-url sqlite:///app.db migrate
    """
    state: CliState = ctx.obj
    with state.connect() as db:
        try:
            applied = _migrator(state, db).run()
        except MigrationError as e:
            typer.echo(f"Migration failed: {e}", err=True)
            raise typer.Exit(1) from None

    if not applied:
        typer.echo("Nothing to migrate.")
        return
    for name in applied:
        typer.echo(f"Migrated: {name}")


@app.command(name="migrate:rollback")
def rollback_cmd(ctx: typer.Context) -> None:
    """Roll back the last batch of migrations."""
    state: CliState = ctx.obj
    with state.connect() as db:
        try:
            names = _migrator(state, db).rollback()
        except MigrationError as e:
            typer.echo(f"Rollback failed: {e}", err=True)
            raise typer.Exit(1) from None

    if not names:
        typer.echo("Nothing to rollback.")
        return
    for name in names:
        typer.echo(f"Rolled back: {name}")


@app.command(name="migrate:reset")
def reset_cmd(ctx: typer.Context) -> None:
    """Roll back every migration."""
    state: CliState = ctx.obj
    with state.connect() as db:
        try:
            names = _migrator(state, db).reset()
        except MigrationError as e:
            typer.echo(f"Reset failed: {e}", err=True)
            raise typer.Exit(1) from None

    for name in names:
        typer.echo(f"Rolled back: {name}")
    typer.echo(f"Reset {len(names)} migration(s).")


@app.command(name="migrate:status")
def status_cmd(ctx: typer.Context) -> None:
    """Show which migrations have run."""
    state: CliState = ctx.obj
    with state.connect() as db:
        try:
            rows = _migrator(state, db).status()
        except MigrationError as e:
            typer.echo(f"Status failed: {e}", err=True)
            raise typer.Exit(1) from None

    if not rows:
        typer.echo("No migrations found.")
        return
    typer.echo(f"{'Ran?':<6}{'Batch':<7}Migration")
    for name, batch in rows:
        ran = "Yes" if batch is not None else "No"
        typer.echo(f"{ran:<6}{'' if batch is None else batch:<7}{name}")


@app.command(name="make:migration")
def make_migration_cmd(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Migration name, e.g. create_posts_table")],
    create: Annotated[
        Optional[str],
        typer.Option("--create", "-c", help="Generate a create-table template for this table"),
    ] = None,
    table: Annotated[
        Optional[str],
        typer.Option("--table", "-t", help="Generate an ALTER TABLE template for this table"),
    ] = None,
    add: Annotated[
        bool,
        typer.Option("--add", help="With --table, generate an add-columns template"),
    ] = False,
    dialect: Annotated[
        str,
        typer.Option("--dialect", help="SQL dialect of the template (sqlite, mysql, postgresql)"),
    ] = "sqlite",
) -> None:
    """Create a new .up.sql / .down.sql migration pair.

    Examples:
        tucksql make:migration create_posts_table --create posts
        tucksql make:migration add_avatar_to_users --table users --add
        tucksql make:migration rename_user_columns --table users
    """
    state: CliState = ctx.obj
    try:
        up_path, down_path = make_migration(
            name,
            state.path,
            create=create,
            dialect=get_dialect(dialect),
            table=table,
            add=add,
        )
    except (FileExistsError, ValueError, ConfigurationError) as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Created migration: {up_path}")
    typer.echo(f"Created migration: {down_path}")


@app.command(name="migration:list")
def list_cmd(ctx: typer.Context) -> None:
    """List migration files without touching the database."""
    state: CliState = ctx.obj
    try:
        names = list_migrations(state.path)
    except MigrationError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from None

    if not names:
        typer.echo("No migrations found.")
        return
    for name in names:
        typer.echo(name)


def load_seeder(target: str) -> Seeder:
    """
    按 'module:Class' 加载填充器

    Raises:
        ConfigurationError: 格式错误、模块或类不存在、类不是 Seeder 子类
    """
    module_name, sep, class_name = target.partition(":")
    if not sep or not module_name or not class_name:
        raise ConfigurationError(f"Seeder must be given as 'module:Class', got '{target}'")

    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import seeder module '{module_name}': {e}") from e

    seeder_class = getattr(module, class_name, None)
    if not isinstance(seeder_class, type) or not issubclass(seeder_class, Seeder):
        raise ConfigurationError(f"'{target}' is not a Seeder subclass")
    return seeder_class()


@app.command(name="db:seed")
def seed_cmd(
    ctx: typer.Context,
    seeder: Annotated[str, typer.Argument(help="Seeder to run, as module:Class")],
) -> None:
    """Run a database seeder.

    Examples:
        tucksql --database-url sqlite:///app.db db:seed seeders:DatabaseSeeder
    """
    state: CliState = ctx.obj
    try:
        instance = load_seeder(seeder)
    except ConfigurationError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1) from None

    with state.connect() as db:
        try:
            instance.run(db)
        except DatabaseError as e:
            typer.echo(f"Seeding failed: {e}", err=True)
            raise typer.Exit(1) from None

    typer.echo(f"Seeded: {type(instance).__name__}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
