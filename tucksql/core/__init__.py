"""
tucksql 核心模块

包含值序列化、事件、连接管理与 Entity
"""

from .types import register_serializer, serialize_payload, to_bind_value
from .event import event, EventManager
from .connection import (
    Connection,
    ConnectionManager,
    ExecuteResult,
    create_engine_for,
    resolve_connection,
)
from .entity import Entity

__all__ = [
    # Types
    'register_serializer',
    'serialize_payload',
    'to_bind_value',
    # Event
    'event',
    'EventManager',
    # Connection
    'Connection',
    'ConnectionManager',
    'ExecuteResult',
    'create_engine_for',
    'resolve_connection',
    # Entity
    'Entity',
]
