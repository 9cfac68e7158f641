"""
tucksql 通用工具函数
"""

import re
from datetime import datetime
from typing import List


TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S.%f'

_UPPER_AFTER_LOWER = re.compile(r'(?<=[a-z])([A-Z])')
_SEPARATORS = re.compile(r'[-\s]+')


def current_timestamp() -> str:
    """返回本地当前时间的文本形式（精确到微秒）"""
    return datetime.now().strftime(TIMESTAMP_FORMAT)


def to_snake_case(name: str) -> str:
    """
    转换为 snake_case

    Example:
        >>> to_snake_case('CreateUsersTable')
        'create_users_table'
        >>> to_snake_case('add email-to users')
        'add_email_to_users'
    """
    name = _UPPER_AFTER_LOWER.sub(r'_\1', name.strip())
    return _SEPARATORS.sub('_', name).lower()


def split_sql_statements(script: str) -> List[str]:
    """
    按分号拆分 SQL 脚本

    跳过引号内的分号以及 -- / /* */ 注释中的内容，返回去除首尾空白后的非空语句。

    Args:
        script: SQL 脚本文本

    Returns:
        语句列表（不含结尾分号）
    """
    statements: List[str] = []
    buf: List[str] = []
    i = 0
    n = len(script)
    quote = ''

    while i < n:
        ch = script[i]

        if quote:
            buf.append(ch)
            if ch == quote:
                # 两个连续引号是转义
                if i + 1 < n and script[i + 1] == quote:
                    buf.append(script[i + 1])
                    i += 1
                else:
                    quote = ''
            i += 1
            continue

        if ch in ('\'', '"', '`'):
            quote = ch
            buf.append(ch)
        elif ch == '-' and script.startswith('--', i):
            end = script.find('\n', i)
            i = n if end == -1 else end
            continue
        elif ch == '/' and script.startswith('/*', i):
            end = script.find('*/', i + 2)
            i = n if end == -1 else end + 2
            continue
        elif ch == ';':
            statement = ''.join(buf).strip()
            if statement:
                statements.append(statement)
            buf = []
        else:
            buf.append(ch)
        i += 1

    tail = ''.join(buf).strip()
    if tail:
        statements.append(tail)
    return statements
