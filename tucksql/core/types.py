"""
tucksql 类型系统

定义绑定值的类型标记，以及把 Python 值 / 负载对象转换为列值映射的序列化函数
"""

import dataclasses
import json
from datetime import datetime, date, time, timedelta
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Callable, Dict, Mapping, Optional, Type, Union

from ..common.exceptions import SerializationError


# 可直接交给驱动绑定的标量
Scalar = Union[None, bool, int, float, str, bytes]
_SCALAR_TYPES = (type(None), bool, int, float, str, bytes, bytearray, memoryview)


class ValueKind(IntEnum):
    """绑定值类型标记"""
    NULL = 0
    BOOL = 1
    INT = 2
    FLOAT = 3
    STR = 4
    BYTES = 5


# ========== 标量序列化函数 ==========

def _serialize_datetime(value: Any) -> str:
    """序列化 datetime 为 'YYYY-MM-DD HH:MM:SS[.ffffff]'"""
    return value.isoformat(sep=' ')


def _serialize_iso(value: Any) -> str:
    """序列化 date / time 为 ISO 格式字符串"""
    return value.isoformat()


def _serialize_timedelta(value: Any) -> float:
    """序列化 timedelta 为总秒数"""
    return value.total_seconds()


def _serialize_decimal(value: Any) -> str:
    """序列化 Decimal 为字符串（保留精度）"""
    return str(value)


def _serialize_json(value: Any) -> str:
    """序列化 list/dict 为 JSON 字符串"""
    try:
        return json.dumps(value, ensure_ascii=False, default=_json_default)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Value is not JSON serializable: {e}") from e


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# 序列化函数注册表（按 isinstance 顺序匹配，datetime 必须在 date 之前）
_SERIALIZERS: Dict[type, Callable[[Any], Scalar]] = {
    datetime: _serialize_datetime,
    date: _serialize_iso,
    time: _serialize_iso,
    timedelta: _serialize_timedelta,
    Decimal: _serialize_decimal,
    list: _serialize_json,
    tuple: _serialize_json,
    dict: _serialize_json,
}


def register_serializer(py_type: Type, serializer: Callable[[Any], Scalar]) -> None:
    """
    注册自定义类型的序列化函数

    Args:
        py_type: Python 类型
        serializer: 把该类型的值转换为标量的函数
    """
    _SERIALIZERS[py_type] = serializer


def value_kind(value: Any) -> ValueKind:
    """
    获取标量的类型标记

    Raises:
        SerializationError: 值不是标量
    """
    if value is None:
        return ValueKind.NULL
    # bool 是 int 的子类，必须先判断
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        return ValueKind.INT
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STR
    if isinstance(value, (bytes, bytearray, memoryview)):
        return ValueKind.BYTES
    raise SerializationError(f"Unsupported bind value type: {type(value).__name__}")


def to_bind_value(value: Any) -> Scalar:
    """
    把 Python 值转换为可绑定的标量

    标量原样返回；Enum 取其 value；datetime/date/Decimal/list/dict 等
    通过注册表转换为文本或数字。转换结果再经 value_kind 校验，
    自定义序列化函数返回非标量时同样报错。

    Raises:
        SerializationError: 不支持的类型
    """
    if isinstance(value, Enum):
        value = value.value

    if not isinstance(value, _SCALAR_TYPES):
        value = _serialize(value)

    if value_kind(value) is ValueKind.BYTES:
        return bytes(value)
    return value


def _serialize(value: Any) -> Any:
    for py_type, serializer in _SERIALIZERS.items():
        if isinstance(value, py_type):
            return serializer(value)
    raise SerializationError(f"Unsupported bind value type: {type(value).__name__}")


def _payload_mapping(data: Any) -> Mapping[Any, Any]:
    """把负载对象转换为映射（未做列值转换）"""
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return data
    # Entity 或其他提供 to_dict 的对象
    to_dict = getattr(data, 'to_dict', None)
    if callable(to_dict):
        return to_dict()
    # pydantic v2 / v1
    model_dump = getattr(data, 'model_dump', None)
    if callable(model_dump):
        return model_dump()
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return dataclasses.asdict(data)
    raise SerializationError(
        f"Cannot convert {type(data).__name__} to a column map; "
        f"expected a mapping, dataclass or object with to_dict()"
    )


def serialize_payload(data: Any = None, extra: Optional[Mapping[str, Any]] = None) -> Dict[str, Scalar]:
    """
    把 create/update 的负载转换为 列名 -> 标量 的有序映射

    Args:
        data: 映射、dataclass、带 to_dict()/model_dump() 的对象或 None
        extra: 额外的关键字参数，覆盖 data 中的同名列

    Returns:
        列值映射（保持插入顺序）

    Raises:
        SerializationError: 负载无法转换，或列名不是字符串，或值类型不受支持
    """
    merged: Dict[Any, Any] = dict(_payload_mapping(data))
    if extra:
        merged.update(extra)

    result: Dict[str, Scalar] = {}
    for key, value in merged.items():
        if not isinstance(key, str) or not key:
            raise SerializationError(f"Column names must be non-empty strings, got {key!r}")
        try:
            result[key] = to_bind_value(value)
        except SerializationError as e:
            raise SerializationError(f"Column '{key}': {e}") from e
    return result
