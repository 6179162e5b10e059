# plugins/core_precache/__init__.py
import logging
from pathlib import Path
from typing import List

from precacher.core.contracts import (
    Container,
    HookManager,
    PrecacheManifest,
    SERVICES_POST_REGISTER,
    SERVER_PRECACHE_RESOURCES,
    APP_SHUTDOWN
)
from .archive import VpkArchiveReader
from .config import PrecacheConfig, load_config, assets_directory
from .contracts import AddOutcome, COLLECT_PRECACHE_RESOURCES
from .emitter import PrecacheEmitter
from .resource_set import ResourceSet
from .scanner import ArchiveScanner

logger = logging.getLogger(__name__)

PLUGIN_NAME = "core_precache"


# --- 服务工厂 ---

def _create_precache_config(container: Container) -> PrecacheConfig:
    return load_config(container.resolve("module_directory"))

def _create_archive_scanner(container: Container) -> ArchiveScanner:
    return ArchiveScanner(
        resource_set=container.resolve("resource_set"),
        reader=container.resolve("archive_reader")
    )

def _create_precache_emitter(container: Container) -> PrecacheEmitter:
    return PrecacheEmitter(
        resource_set=container.resolve("resource_set"),
        config=container.resolve("precache_config"),
        hook_manager=container.resolve("hook_manager")
    )


# --- 钩子实现 ---

async def build_resource_set(container: Container, hook_manager: HookManager):
    """钩子实现: 启动时同步扫描 assets 目录，然后收集其他插件追加的资源。"""
    module_dir: Path = container.resolve("module_directory")
    scanner: ArchiveScanner = container.resolve("archive_scanner")
    resource_set: ResourceSet = container.resolve("resource_set")

    # 扫描只在启动时发生一次，服务器开始服务前阻塞是可以接受的
    scanner.scan(assets_directory(module_dir))

    extra_resources: List[str] = await hook_manager.filter(COLLECT_PRECACHE_RESOURCES, [])
    for resource_path in extra_resources:
        if resource_set.add(resource_path) is AddOutcome.DUPLICATE:
            logger.warning(f"Duplicate entry for resource: '{resource_path}'")

    logger.info(f"Resource set ready with {resource_set.count} resource(s).")


async def precache_resources(manifest: PrecacheManifest, container: Container):
    """钩子实现: 响应宿主的 server_precache_resources 事件。"""
    emitter: PrecacheEmitter = container.resolve("precache_emitter")
    await emitter.on_precache_resources(manifest)


async def release_resource_set(container: Container):
    resource_set: ResourceSet = container.resolve("resource_set")
    resource_set.clear()
    logger.debug("Resource set cleared on shutdown.")


# --- 主注册函数 ---

def register_plugin(container: Container, hook_manager: HookManager):
    logger.info(f"--> 正在注册 [{PLUGIN_NAME}] 插件...")

    container.register("precache_config", _create_precache_config, singleton=True)
    container.register("archive_reader", lambda: VpkArchiveReader(), singleton=True)
    container.register("resource_set", lambda: ResourceSet(), singleton=True)
    container.register("archive_scanner", _create_archive_scanner, singleton=True)
    container.register("precache_emitter", _create_precache_emitter, singleton=True)

    hook_manager.add_implementation(
        SERVICES_POST_REGISTER, build_resource_set, priority=50, plugin_name=PLUGIN_NAME
    )
    hook_manager.add_implementation(
        SERVER_PRECACHE_RESOURCES, precache_resources, plugin_name=PLUGIN_NAME
    )
    hook_manager.add_implementation(
        APP_SHUTDOWN, release_resource_set, plugin_name=PLUGIN_NAME
    )

    logger.info(f"插件 [{PLUGIN_NAME}] 注册成功。")
