"""
tucksql 迁移示例

展示：
- make_migration 生成迁移文件对
- Migrator.run / status / rollback
- Seeder 填充数据
"""

import logging
import os
import sys
import tempfile
from pathlib import Path

# 添加父目录到路径
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from tucksql import ConnectionManager, Migrator, Seeder, SQLITE
from tucksql.tools import make_migration

logging.basicConfig(level=logging.INFO, format='   %(message)s')

print("=" * 60)
print("tucksql 迁移示例")
print("=" * 60)

with tempfile.TemporaryDirectory() as tmp:
    root = Path(tmp)
    migrations = root / 'migrations'

    # ========================================================================
    # 1. 生成迁移文件
    # ========================================================================

    print("\n1. 生成迁移文件")
    up_path, down_path = make_migration('create_posts_table', migrations, create='posts', dialect=SQLITE)
    print(f"   ✓ {up_path.name}")
    print(f"   ✓ {down_path.name}")
    print(up_path.read_text(encoding='utf-8'))

    # ========================================================================
    # 2. 执行迁移
    # ========================================================================

    print("\n2. 执行迁移")
    db = ConnectionManager.from_url(f"sqlite:///{root / 'app.db'}")
    migrator = Migrator(db, migrations)
    migrator.run()
    migrator.run()

    for name, batch in migrator.status():
        print(f"   {name}: batch={batch}")

    # ========================================================================
    # 3. 填充数据
    # ========================================================================

    print("\n3. 填充数据")

    class PostSeeder(Seeder):
        def run(self, db):
            conn = db.connection()
            for n in range(3):
                conn.execute('INSERT INTO posts DEFAULT VALUES')

    class DatabaseSeeder(Seeder):
        def run(self, db):
            self.call(PostSeeder, db)

    DatabaseSeeder().run(db)
    print(f"   posts: {db.connection().fetch_value('SELECT COUNT(*) FROM posts')} 行")

    # ========================================================================
    # 4. 回滚
    # ========================================================================

    print("\n4. 回滚")
    migrator.rollback()
    print(f"   已执行的迁移: {migrator.ran()}")

    db.close()

print("\n完成")
