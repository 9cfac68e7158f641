"""
tucksql Active Record 模式示例

展示 Entity 的使用方式：
- Schema.create 建表
- Entity 自带 create, find, update, delete, restore 等方法
- 软删除与时间戳
- 关联关系与分页
"""

import os
import sys

# 添加父目录到路径
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from tucksql import ConnectionManager, Entity, Schema, SQLITE, event

print("=" * 60)
print("tucksql Active Record 模式示例")
print("=" * 60)

# ============================================================================
# 1. 初始化数据库并建表
# ============================================================================

print("\n1. 初始化数据库")
db = ConnectionManager.from_url('sqlite::memory:')
conn = db.connection()

conn.execute_script(Schema.create('users', lambda t: (
    t.id(),
    t.string('name'),
    t.string('email').unique(),
    t.integer('age').nullable(),
    t.timestamps(),
), SQLITE))
conn.execute_script(Schema.create('posts', lambda t: (
    t.id(),
    t.foreign_id('user_id'),
    t.string('title'),
    t.timestamps(),
    t.soft_deletes(),
), SQLITE))
print("   ✓ users / posts 表创建成功")

# ============================================================================
# 2. 定义实体
# ============================================================================

print("\n2. 定义实体")


class User(Entity):
    """用户"""
    __tablename__ = 'users'


class Post(Entity):
    """文章（软删除）"""
    __tablename__ = 'posts'
    __soft_deletes__ = True


@event.listens_for(User, 'before_insert')
def normalize_email(values):
    values['email'] = values['email'].lower()


print("   ✓ User / Post 定义成功")

# ============================================================================
# 3. 创建与查询
# ============================================================================

print("\n3. 创建与查询")
alice_id = User.create(db, name='Alice', email='Alice@Example.com', age=30)
User.create(db, {'name': 'Bob', 'email': 'bob@example.com', 'age': 25})
User.create(db, name='Carol', email='carol@example.com', age=35)

alice = User.find_or_fail(db, alice_id)
print(f"   find_or_fail: {alice.name} <{alice.email}> created_at={alice.created_at}")

adults = User.query().where('age', '>=', 30).order_by('age', 'DESC').get(db)
print(f"   age >= 30: {[u.name for u in adults]}")
print(f"   SQL: {User.query().where('age', '>=', 30).to_sql()}")

# ============================================================================
# 4. 更新
# ============================================================================

print("\n4. 更新")
alice.update(db, age=31)
print(f"   age={alice.age} updated_at={alice.updated_at}")

# ============================================================================
# 5. 关联与软删除
# ============================================================================

print("\n5. 关联与软删除")
for title in ['Hello', 'Second post', 'Draft']:
    Post.create(db, user_id=alice.pk, title=title)

draft = alice.has_many(Post, 'user_id').where_eq('title', 'Draft').first(db)
draft.delete(db)
print(f"   文章: {[p.title for p in alice.has_many(Post, 'user_id').get(db)]}")
print(f"   含已删除: {Post.with_trashed().count(db)} 篇")

draft.restore(db)
print(f"   恢复后: {Post.query().count(db)} 篇")

owner = Post.belongs_to(User, db, draft.user_id)
print(f"   作者: {owner.name}")

# ============================================================================
# 6. 分页
# ============================================================================

print("\n6. 分页")
items, total = User.query().order_by('id').paginate(db, page=1, per_page=2)
print(f"   第 1 页: {[u.name for u in items]}，共 {total} 条")

db.close()
print("\n完成")
