"""
tucksql 数据填充

Example:
    class UserSeeder(Seeder):
        def run(self, db):
            User.create(db, name='Admin', email='admin@example.com')

    class DatabaseSeeder(Seeder):
        def run(self, db):
            self.call(UserSeeder, db)
"""

import logging
from typing import Any, Type

logger = logging.getLogger('tucksql')


class Seeder:
    """填充器基类，子类实现 run()"""

    def run(self, db: Any) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement run()")

    def call(self, seeder_class: Type['Seeder'], db: Any) -> None:
        """运行另一个填充器"""
        logger.info("Seeding: %s", seeder_class.__name__)
        seeder_class().run(db)
