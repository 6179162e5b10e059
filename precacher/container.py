# precacher/container.py

import logging
import threading
from typing import Dict, Any, Callable, Set

from precacher.core.contracts import Container as ContainerInterface

logger = logging.getLogger(__name__)


class Container(ContainerInterface):
    """插件共享服务的依赖注入容器。线程安全，带循环依赖检测。"""
    def __init__(self):
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, bool] = {}
        self._instances: Dict[str, Any] = {}
        self._lock = threading.RLock()
        # 每个线程独立的解析栈
        self._local = threading.local()

    def _get_resolution_stack(self) -> Set[str]:
        if not hasattr(self._local, 'resolution_stack'):
            self._local.resolution_stack = set()
        return self._local.resolution_stack

    def register(self, name: str, factory: Callable, singleton: bool = True) -> None:
        """注册一个服务工厂。重复注册会覆盖旧工厂并丢弃已缓存的实例。"""
        with self._lock:
            if name in self._factories:
                logger.warning(f"Overwriting service registration for '{name}'")
                self._instances.pop(name, None)
            self._factories[name] = factory
            self._singletons[name] = singleton

    def is_registered(self, name: str) -> bool:
        return name in self._factories

    def _build(self, name: str) -> Any:
        factory = self._factories[name]
        try:
            return factory(self)
        except TypeError:
            return factory()

    def resolve(self, name: str) -> Any:
        """
        解析一个服务实例。
        单例服务使用双重检查锁定，只会被构建一次。
        """
        resolution_stack = self._get_resolution_stack()
        if name in resolution_stack:
            path = " -> ".join(list(resolution_stack) + [name])
            raise RuntimeError(f"Circular dependency detected: {path}")

        resolution_stack.add(name)

        try:
            is_singleton = self._singletons.get(name, True)
            if is_singleton and name in self._instances:
                return self._instances[name]

            if name not in self._factories:
                raise ValueError(f"Service '{name}' not found in container.")

            if not is_singleton:
                return self._build(name)

            with self._lock:
                if name in self._instances:
                    return self._instances[name]
                instance = self._build(name)
                logger.debug(f"Resolved service '{name}'. Singleton: True")
                self._instances[name] = instance
                return instance
        finally:
            resolution_stack.remove(name)

    def reset(self) -> None:
        """丢弃所有已构建的单例实例，保留注册信息。用于插件卸载后的重新初始化。"""
        with self._lock:
            self._instances.clear()
