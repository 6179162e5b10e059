# precacher/app.py
import os
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from dotenv import load_dotenv

from precacher.container import Container
from precacher.core.contracts import (
    PrecacheManifest,
    SERVICES_POST_REGISTER,
    APP_SHUTDOWN,
    SERVER_PRECACHE_RESOURCES
)
from precacher.core.hooks import HookManager
from precacher.core.loader import PluginLoader
from precacher.core.tasks import BackgroundTaskManager

logger = logging.getLogger(__name__)


class InMemoryManifest(PrecacheManifest):
    """记录所有被添加资源的清单实现。供命令行模拟宿主与测试使用。"""

    def __init__(self, handle: Optional[int] = None):
        self._handle = handle if handle is not None else id(self)
        self.resources: List[str] = []

    @property
    def handle(self) -> int:
        return self._handle

    def add_resource(self, resource_path: str) -> None:
        self.resources.append(resource_path)


class PrecacherApp:
    """
    宿主侧的组合根。

    负责构建容器、钩子管理器与后台任务管理器，加载插件，并把宿主的
    “服务器即将预缓存资源”事件转发给插件。插件卸载（shutdown）后，
    所有单例服务被丢弃，下一次 startup 会完整重建资源集合。
    """

    def __init__(
        self,
        module_dir: Optional[Path] = None,
        plugin_package: str = "plugins",
        disabled_plugins: Optional[Iterable[str]] = None
    ):
        self.module_dir = Path(module_dir or os.getenv("PRECACHER_MODULE_DIR") or Path.cwd())
        self.plugin_package = plugin_package
        self.disabled_plugins = list(disabled_plugins or ())

        self.container = Container()
        self.hook_manager = HookManager(self.container)
        self.task_manager = BackgroundTaskManager(self.container)
        self.loaded_plugins: List[str] = []
        self._started = False

        self.container.register("container", lambda: self.container)
        self.container.register("hook_manager", lambda: self.hook_manager)
        self.container.register("task_manager", lambda: self.task_manager)
        self.container.register("module_directory", lambda: self.module_dir)

        loader = PluginLoader(
            self.container, self.hook_manager,
            package=self.plugin_package, disabled=self.disabled_plugins
        )
        self.loaded_plugins = loader.load_plugins()

    async def startup(self) -> None:
        if self._started:
            logger.warning("PrecacherApp is already started.")
            return

        logger.info("Triggering 'services_post_register' for plugin initialization...")
        await self.hook_manager.trigger(SERVICES_POST_REGISTER)

        self.task_manager.start()
        self._started = True
        logger.info("--- Precacher is ready ---")

    async def precache(self, manifest: PrecacheManifest) -> None:
        """转发宿主的预缓存事件。宿主保证同一时刻只发出一个事件。"""
        if not self._started:
            raise RuntimeError("PrecacherApp must be started before precaching.")
        await self.hook_manager.trigger(SERVER_PRECACHE_RESOURCES, manifest=manifest)

    async def shutdown(self) -> None:
        if not self._started:
            return
        logger.info("--- Precacher is shutting down ---")
        await self.task_manager.stop()
        await self.hook_manager.trigger(APP_SHUTDOWN)
        self.container.reset()
        self._started = False

    async def __aenter__(self) -> "PrecacherApp":
        await self.startup()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()


def create_app(module_dir: Optional[Path] = None, **kwargs) -> PrecacherApp:
    """应用工厂函数。读取 .env 后构建 PrecacherApp。"""
    load_dotenv()
    return PrecacherApp(module_dir=module_dir, **kwargs)
