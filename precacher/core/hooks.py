# precacher/core/hooks.py
import asyncio
import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from precacher.core.contracts import HookManager as HookManagerInterface, Container

logger = logging.getLogger(__name__)

T = TypeVar('T')

HookCallable = Callable[..., Awaitable[Any]]


@dataclass(order=True)
class HookImplementation:
    """封装一个钩子实现及其元数据。"""
    priority: int
    func: HookCallable = field(compare=False)
    plugin_name: str = field(compare=False, default="<unknown>")


class HookManager(HookManagerInterface):
    """
    中心化的钩子调度服务。
    按参数名把共享上下文（container 与 hook_manager）及本次调用的关键字参数注入到钩子函数中。
    """
    def __init__(self, container: Container):
        self._hooks: Dict[str, List[HookImplementation]] = defaultdict(list)
        self._shared_context: Dict[str, Any] = {
            "container": container,
            "hook_manager": self
        }
        logger.info("HookManager initialized and context-aware.")

    def _prepare_hook_args(
        self,
        func: HookCallable,
        call_context: Dict[str, Any],
        positional_data: Optional[Any] = None,
        has_positional: bool = False
    ) -> tuple[list, dict]:
        """根据钩子函数的签名准备参数。filter 钩子的数据总是作为第一个位置参数。"""
        params = list(inspect.signature(func).parameters.values())

        hook_args: list = []
        if has_positional:
            hook_args.append(positional_data)
            # 第一个可按位置传递的参数已被数据占用
            for i, param in enumerate(params):
                if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
                    params = params[:i] + params[i + 1:]
                    break

        if any(p.kind == p.VAR_KEYWORD for p in params):
            return hook_args, dict(call_context)

        hook_kwargs = {
            p.name: call_context[p.name]
            for p in params
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY) and p.name in call_context
        }
        return hook_args, hook_kwargs

    def add_implementation(
        self,
        hook_name: str,
        implementation: HookCallable,
        priority: int = 10,
        plugin_name: str = "<core>"
    ):
        """向管理器注册一个钩子实现。优先级数值越小越先执行。"""
        if not inspect.iscoroutinefunction(implementation):
            raise TypeError(f"Hook implementation for '{hook_name}' must be an async function.")

        hook_impl = HookImplementation(priority=priority, func=implementation, plugin_name=plugin_name)
        self._hooks[hook_name].append(hook_impl)
        self._hooks[hook_name].sort()
        logger.debug(f"Registered hook '{hook_name}' from plugin '{plugin_name}' with priority {priority}.")

    async def trigger(self, hook_name: str, **kwargs: Any) -> None:
        """
        触发一个“通知型”钩子。并发执行，忽略返回值。
        单个实现的异常会被记录，不会传播给调用者。
        """
        if hook_name not in self._hooks:
            return

        call_context = {**self._shared_context, **kwargs}

        implementations = []
        coros = []
        for impl in self._hooks[hook_name]:
            try:
                _, prepared_kwargs = self._prepare_hook_args(impl.func, call_context)
                coros.append(impl.func(**prepared_kwargs))
                implementations.append(impl)
            except Exception as e:
                logger.error(
                    f"Error preparing args for NOTIFICATION hook '{hook_name}' from plugin '{impl.plugin_name}': {e}",
                    exc_info=e
                )

        results = await asyncio.gather(*coros, return_exceptions=True)

        for impl, result in zip(implementations, results):
            if isinstance(result, Exception):
                logger.error(
                    f"Error in NOTIFICATION hook '{hook_name}' from plugin '{impl.plugin_name}': {result}",
                    exc_info=result
                )

    async def filter(self, hook_name: str, data: T, **kwargs: Any) -> T:
        """
        触发一个“过滤型”钩子，按优先级形成处理链。
        出错的实现被跳过，数据保持上一步的结果。
        """
        if hook_name not in self._hooks:
            return data

        call_context = {**self._shared_context, **kwargs}
        current_data = data

        for impl in self._hooks[hook_name]:
            try:
                prepared_args, prepared_kwargs = self._prepare_hook_args(
                    impl.func, call_context, positional_data=current_data, has_positional=True
                )
                current_data = await impl.func(*prepared_args, **prepared_kwargs)
            except Exception as e:
                logger.error(
                    f"Error in FILTER hook '{hook_name}' from plugin '{impl.plugin_name}'. Skipping. Error: {e}",
                    exc_info=e
                )

        return current_data

