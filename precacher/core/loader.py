# precacher/core/loader.py

import json
import logging
import importlib
import importlib.resources
import traceback
from typing import Dict, Iterable, List, Optional

from precacher.core.contracts import Container, HookManager, PluginRegisterFunc

logger = logging.getLogger(__name__)

DEFAULT_PLUGIN_PRIORITY = 100


class PluginLoader:
    def __init__(
        self,
        container: Container,
        hook_manager: HookManager,
        package: str = "plugins",
        disabled: Optional[Iterable[str]] = None
    ):
        self._container = container
        self._hook_manager = hook_manager
        self._package = package
        self._disabled = set(disabled or ())
        self.loaded: List[str] = []

    def load_plugins(self) -> List[str]:
        """发现、排序并注册所有插件，返回按加载顺序排列的插件名。"""
        # 此时日志系统可能还未配置，因此使用 print
        print("\n--- Precacher 插件系统：开始加载 ---")

        all_plugins = [p for p in self._discover_plugins() if p['name'] not in self._disabled]
        if not all_plugins:
            print("警告：未发现任何插件。")
            print("--- Precacher 插件系统：加载完成 ---\n")
            return []

        sorted_plugins = sorted(
            all_plugins,
            key=lambda p: (p['manifest'].get('priority', DEFAULT_PLUGIN_PRIORITY), p['name'])
        )

        print("插件加载顺序已确定：")
        for i, p_info in enumerate(sorted_plugins):
            print(f"  {i+1}. {p_info['name']} (优先级: {p_info['manifest'].get('priority', DEFAULT_PLUGIN_PRIORITY)})")

        self._register_plugins(sorted_plugins)

        logger.info(f"All plugins loaded and registered: {self.loaded}")
        print("--- Precacher 插件系统：加载完成 ---\n")
        return list(self.loaded)

    def _discover_plugins(self) -> List[Dict]:
        """扫描插件包，读取每个子包中的 manifest.json。"""
        discovered = []
        try:
            plugins_package_path = importlib.resources.files(self._package)
        except ModuleNotFoundError:
            return discovered

        for plugin_path in plugins_package_path.iterdir():
            if not plugin_path.is_dir() or plugin_path.name.startswith(('__', '.')):
                continue

            manifest_path = plugin_path / "manifest.json"
            if not manifest_path.is_file():
                continue

            try:
                manifest = json.loads(manifest_path.read_text(encoding='utf-8'))
            except (OSError, json.JSONDecodeError) as e:
                print(f"警告：无法解析插件清单 '{manifest_path}'，已跳过。({e})")
                continue

            discovered.append({
                "name": manifest.get('name', plugin_path.name),
                "manifest": manifest,
                "import_path": f"{self._package}.{plugin_path.name}"
            })

        return discovered

    def _register_plugins(self, plugins: List[Dict]):
        """按顺序导入并调用每个插件的 register_plugin。"""
        for plugin_info in plugins:
            plugin_name = plugin_info['name']
            import_path = plugin_info['import_path']

            try:
                plugin_module = importlib.import_module(import_path)
                register_func: PluginRegisterFunc = getattr(plugin_module, "register_plugin")
                register_func(self._container, self._hook_manager)
                self.loaded.append(plugin_name)

            except Exception as e:
                print("\n" + "="*80)
                print(f"!!! 致命错误：加载插件 '{plugin_name}' ({import_path}) 失败 !!!")
                print("="*80)
                traceback.print_exc()
                print("="*80)
                # 插件之间存在服务依赖，加载失败时停止启动
                raise RuntimeError(f"无法加载插件 {plugin_name}") from e
