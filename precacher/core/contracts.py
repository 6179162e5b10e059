# precacher/core/contracts.py

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, List, TypeVar

# --- 1. 核心服务接口与类型别名 ---

T = TypeVar('T')

# 插件注册函数的标准签名
PluginRegisterFunc = Callable[['Container', 'HookManager'], None]

# 平台生命周期钩子名称
SERVICES_POST_REGISTER = "services_post_register"
APP_SHUTDOWN = "app_shutdown"

# 宿主引擎事件：服务器即将预缓存资源
SERVER_PRECACHE_RESOURCES = "server_precache_resources"


class Container(ABC):
    @abstractmethod
    def register(self, name: str, factory: Callable, singleton: bool = True) -> None: raise NotImplementedError
    @abstractmethod
    def resolve(self, name: str) -> Any: raise NotImplementedError
    @abstractmethod
    def is_registered(self, name: str) -> bool: raise NotImplementedError


class HookManager(ABC):
    @abstractmethod
    def add_implementation(self, hook_name: str, implementation: Callable, priority: int = 10, plugin_name: str = "<unknown>"): raise NotImplementedError
    @abstractmethod
    async def trigger(self, hook_name: str, **kwargs: Any) -> None: raise NotImplementedError
    @abstractmethod
    async def filter(self, hook_name: str, data: T, **kwargs: Any) -> T: raise NotImplementedError


@dataclass(frozen=True)
class TaskFailure:
    """后台任务失败的记录，由 BackgroundTaskManager 的失败通道保存。"""
    task_name: str
    exception: BaseException


class BackgroundTaskManager(ABC):
    @abstractmethod
    def start(self) -> None: raise NotImplementedError
    @abstractmethod
    async def stop(self) -> None: raise NotImplementedError
    @abstractmethod
    def submit_task(self, coro_func: Callable[..., Coroutine], *args: Any, **kwargs: Any) -> bool: raise NotImplementedError
    @property
    @abstractmethod
    def failures(self) -> List[TaskFailure]: raise NotImplementedError


# --- 2. 宿主引擎契约 ---

class PrecacheManifest(ABC):
    """
    宿主在每个预缓存周期提供的清单句柄。
    其生命周期完全由宿主拥有；插件只调用 add_resource 并读取 handle 用于日志。
    """

    @property
    @abstractmethod
    def handle(self) -> int: raise NotImplementedError

    @abstractmethod
    def add_resource(self, resource_path: str) -> None: raise NotImplementedError
