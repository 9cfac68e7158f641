"""
tucksql Entity 事件钩子系统

提供轻量级事件回调机制：

- before_insert / after_insert: 回调参数为列值映射（可在 before_insert 中修改）
- before_update / after_update: 回调参数为 (实例, 列值映射)
- before_delete / after_delete: 回调参数为实例
- before_restore / after_restore: 回调参数为实例

使用方式：
    from tucksql import event

    # 装饰器注册
    @event.listens_for(User, 'before_insert')
    def normalize_email(values):
        values['email'] = values['email'].lower()

    # 函数式注册
    event.listen(User, 'after_update', audit_changes)

    # 移除监听器
    event.remove(User, 'before_insert', normalize_email)
"""

from typing import Any, Callable, Dict, List, Set, Tuple


ENTITY_EVENTS: Set[str] = {
    'before_insert', 'after_insert',
    'before_update', 'after_update',
    'before_delete', 'after_delete',
    'before_restore', 'after_restore',
}


class EventManager:
    """
    事件管理器

    全局单例，按 (Entity 类, 事件名) 保存监听器。
    """

    def __init__(self) -> None:
        # {(entity_class, event_name): [callbacks]}
        self._listeners: Dict[Tuple[type, str], List[Callable[..., Any]]] = {}

    def listen(self, target: type, event_name: str, fn: Callable[..., Any]) -> None:
        """
        注册事件监听器

        Args:
            target: Entity 类
            event_name: 事件名称
            fn: 回调函数

        Raises:
            ValueError: 未知事件名
        """
        if event_name not in ENTITY_EVENTS:
            raise ValueError(
                f"Unknown event: '{event_name}'. "
                f"Valid events: {', '.join(sorted(ENTITY_EVENTS))}"
            )
        self._listeners.setdefault((target, event_name), []).append(fn)

    def listens_for(self, target: type, event_name: str) -> Callable[..., Any]:
        """
        装饰器方式注册事件监听器

        Returns:
            装饰器函数
        """
        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.listen(target, event_name, fn)
            return fn
        return decorator

    def remove(self, target: type, event_name: str, fn: Callable[..., Any]) -> None:
        """移除事件监听器（不存在时忽略）"""
        listeners = self._listeners.get((target, event_name), [])
        if fn in listeners:
            listeners.remove(fn)

    def dispatch(self, entity_class: type, event_name: str, *args: Any) -> None:
        """
        分发事件

        只触发注册在该类本身上的监听器，不向父类传播。
        """
        for fn in list(self._listeners.get((entity_class, event_name), [])):
            fn(*args)

    def clear(self, target: Any = None) -> None:
        """
        清除监听器

        Args:
            target: None 清除所有，Entity 类清除该类的监听器
        """
        if target is None:
            self._listeners.clear()
            return
        for key in [k for k in self._listeners if k[0] is target]:
            del self._listeners[key]


# 全局单例
event = EventManager()
