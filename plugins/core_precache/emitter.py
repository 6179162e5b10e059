# plugins/core_precache/emitter.py
import time
import socket
import logging
from datetime import datetime

from precacher.core.contracts import HookManager, PrecacheManifest

from .config import PrecacheConfig
from .contracts import PRECACHE_COMPLETED, RunSummary
from .resource_set import ResourceSet

logger = logging.getLogger(__name__)


class PrecacheEmitter:
    """
    在宿主的预缓存事件中，把资源集合中的每个路径注册到清单上，并在结束后
    把 RunSummary 交给报告插件（通过 precache_completed 钩子）。
    """

    def __init__(self, resource_set: ResourceSet, config: PrecacheConfig, hook_manager: HookManager):
        self._resource_set = resource_set
        self._config = config
        self._hook_manager = hook_manager
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def emit(self, manifest: PrecacheManifest) -> RunSummary:
        """同步遍历资源集合。清单对象不保证线程安全，因此这里不让出控制权。"""
        if self._running:
            logger.warning("Precache event received while a previous cycle is still running.")

        self._running = True
        try:
            resources = self._resource_set.all()
            total = len(resources)

            started = time.perf_counter()
            for index, resource_path in enumerate(resources, start=1):
                if self._config.log:
                    logger.info(
                        f"Precaching \"{resource_path}\" (context: 0x{manifest.handle:X}) [{index}/{total}]"
                    )
                manifest.add_resource(resource_path)
            elapsed_ms = int((time.perf_counter() - started) * 1000)
        finally:
            self._running = False

        if self._config.log:
            logger.info(f"Precached {total} resources in {elapsed_ms}ms.")

        return RunSummary(
            count=total,
            elapsed_ms=elapsed_ms,
            hostname=socket.gethostname(),
            timestamp=datetime.now(),
            resources=resources
        )

    async def on_precache_resources(self, manifest: PrecacheManifest) -> RunSummary:
        """宿主事件的处理入口：发射资源，然后无条件通知报告插件。"""
        summary = self.emit(manifest)
        # trigger 会隔离并记录每个报告实现的异常，预缓存周期不受影响
        await self._hook_manager.trigger(PRECACHE_COMPLETED, summary=summary)
        return summary
