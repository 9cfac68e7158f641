"""
关联关系测试

测试 has_many / has_one / belongs_to / belongs_to_many / morph_one / morph_many：
- 渲染的 SQL 与绑定值
- 对 SQLite 的实际查询结果
"""

import os
import sys
import unittest

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tucksql import ConnectionManager, Entity, Schema, SQLITE


class User(Entity):
    __tablename__ = 'users'
    __timestamps__ = False


class Profile(Entity):
    __tablename__ = 'profiles'
    __timestamps__ = False


class Post(Entity):
    __tablename__ = 'posts'
    __timestamps__ = False
    __soft_deletes__ = True


class Role(Entity):
    __tablename__ = 'roles'
    __timestamps__ = False


class Image(Entity):
    __tablename__ = 'images'
    __timestamps__ = False


class Comment(Entity):
    __tablename__ = 'comments'
    __timestamps__ = False


class TestRelationshipSql(unittest.TestCase):
    """关联构建器渲染测试（不访问数据库）"""

    def test_has_many(self) -> None:
        query = User(id=3).has_many(Post, 'user_id')

        self.assertEqual(query.to_sql(), 'SELECT * FROM posts WHERE deleted_at IS NULL AND user_id = ?')
        self.assertEqual(query.bindings, [3])

    def test_has_one(self) -> None:
        query = User(id=3).has_one(Profile, 'user_id')
        self.assertEqual(query.to_sql(), 'SELECT * FROM profiles WHERE user_id = ?')

    def test_belongs_to_many(self) -> None:
        """多对多：通过中间表连接，按中间表外键过滤"""
        query = User(id=7).belongs_to_many(Role, 'role_user', 'user_id', 'role_id')

        self.assertEqual(query.to_sql(), (
            'SELECT roles.* FROM roles '
            'INNER JOIN role_user ON roles.id = role_user.role_id '
            'WHERE role_user.user_id = ?'
        ))
        self.assertEqual(query.bindings, [7])

    def test_morph_many(self) -> None:
        """多态：类型鉴别列的值为父表名"""
        query = Post(id=5).morph_many(Comment, 'commentable_id', 'commentable_type')

        self.assertEqual(
            query.to_sql(),
            'SELECT * FROM comments WHERE commentable_id = ? AND commentable_type = ?',
        )
        self.assertEqual(query.bindings, [5, 'posts'])

    def test_relations_are_lazy_and_chainable(self) -> None:
        query = User(id=1).has_many(Post, 'user_id').latest('id').limit(2)
        self.assertTrue(query.to_sql().endswith('ORDER BY id DESC LIMIT 2'))


class TestRelationshipQueries(unittest.TestCase):
    """关联关系查询测试（SQLite）"""

    def setUp(self) -> None:
        """测试前设置"""
        self.db = ConnectionManager.from_url('sqlite::memory:')
        conn = self.db.connection()
        conn.execute_script(Schema.create('users', lambda t: (t.id(), t.string('name')), SQLITE))
        conn.execute_script(Schema.create('profiles', lambda t: (
            t.id(), t.foreign_id('user_id'), t.text('bio'),
        ), SQLITE))
        conn.execute_script(Schema.create('posts', lambda t: (
            t.id(), t.foreign_id('user_id'), t.string('title'), t.soft_deletes(),
        ), SQLITE))
        conn.execute_script(Schema.create('roles', lambda t: (t.id(), t.string('name')), SQLITE))
        conn.execute_script(Schema.create('role_user', lambda t: (
            t.foreign_id('user_id'), t.foreign_id('role_id'),
        ), SQLITE))
        conn.execute_script(Schema.create('images', lambda t: (
            t.id(), t.string('url'), t.big_integer('imageable_id'), t.string('imageable_type'),
        ), SQLITE))
        conn.execute_script(Schema.create('comments', lambda t: (
            t.id(), t.text('body'), t.big_integer('commentable_id'), t.string('commentable_type'),
        ), SQLITE))

        self.alice = User.find_or_fail(self.db, User.create(self.db, name='Alice'))
        self.bob = User.find_or_fail(self.db, User.create(self.db, name='Bob'))

    def tearDown(self) -> None:
        """测试后清理"""
        self.db.close()

    def test_has_many(self) -> None:
        Post.create(self.db, user_id=self.alice.pk, title='A1')
        Post.create(self.db, user_id=self.alice.pk, title='A2')
        Post.create(self.db, user_id=self.bob.pk, title='B1')

        posts = self.alice.has_many(Post, 'user_id').order_by('id').get(self.db)
        self.assertEqual([p.title for p in posts], ['A1', 'A2'])

    def test_has_many_excludes_trashed(self) -> None:
        pk = Post.create(self.db, user_id=self.alice.pk, title='Gone')
        Post.create(self.db, user_id=self.alice.pk, title='Kept')
        Post.find_or_fail(self.db, pk).delete(self.db)

        posts = self.alice.has_many(Post, 'user_id').get(self.db)
        self.assertEqual([p.title for p in posts], ['Kept'])

    def test_has_one(self) -> None:
        Profile.create(self.db, user_id=self.bob.pk, bio='Hello')

        profile = self.bob.has_one(Profile, 'user_id').first(self.db)
        assert profile is not None
        self.assertEqual(profile.bio, 'Hello')
        self.assertIsNone(self.alice.has_one(Profile, 'user_id').first(self.db))

    def test_belongs_to(self) -> None:
        post = Post.find_or_fail(self.db, Post.create(self.db, user_id=self.bob.pk, title='B'))

        owner = Post.belongs_to(User, self.db, post.user_id)
        assert owner is not None
        self.assertEqual(owner.name, 'Bob')
        self.assertIsNone(Post.belongs_to(User, self.db, 404))

    def test_belongs_to_many(self) -> None:
        admin = Role.create(self.db, name='admin')
        editor = Role.create(self.db, name='editor')
        Role.create(self.db, name='viewer')
        conn = self.db.connection()
        for user_id, role_id in [(self.alice.pk, admin), (self.alice.pk, editor), (self.bob.pk, editor)]:
            conn.execute('INSERT INTO role_user (user_id, role_id) VALUES (?, ?)', [user_id, role_id])

        roles = self.alice.belongs_to_many(Role, 'role_user', 'user_id', 'role_id').order_by('roles.id').get(self.db)

        self.assertEqual([r.name for r in roles], ['admin', 'editor'])
        self.assertTrue(all(isinstance(r, Role) for r in roles))

    def test_morph_one_and_many(self) -> None:
        post = Post.find_or_fail(self.db, Post.create(self.db, user_id=self.alice.pk, title='P'))
        Image.create(self.db, url='/cover.png', imageable_id=post.pk, imageable_type='posts')
        Image.create(self.db, url='/avatar.png', imageable_id=post.pk, imageable_type='users')
        Comment.create(self.db, body='Nice', commentable_id=post.pk, commentable_type='posts')
        Comment.create(self.db, body='Great', commentable_id=post.pk, commentable_type='posts')
        Comment.create(self.db, body='Other', commentable_id=post.pk, commentable_type='videos')

        image = post.morph_one(Image, 'imageable_id', 'imageable_type').first(self.db)
        comments = post.morph_many(Comment, 'commentable_id', 'commentable_type').get(self.db)

        assert image is not None
        self.assertEqual(image.url, '/cover.png')
        self.assertEqual([c.body for c in comments], ['Nice', 'Great'])


if __name__ == '__main__':
    unittest.main()
