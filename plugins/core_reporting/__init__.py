# plugins/core_reporting/__init__.py
import logging
from pathlib import Path

from precacher.core.contracts import BackgroundTaskManager, Container, HookManager
from plugins.core_precache.config import PrecacheConfig, logs_directory
from plugins.core_precache.contracts import PRECACHE_COMPLETED, RunSummary

from .log_file import ReportFileWriter
from .webhook import DiscordWebhookNotifier

logger = logging.getLogger(__name__)

PLUGIN_NAME = "core_reporting"


# --- 服务工厂 ---

def _create_report_file_writer(container: Container) -> ReportFileWriter:
    module_dir: Path = container.resolve("module_directory")
    return ReportFileWriter(logs_dir=logs_directory(module_dir))


def _create_webhook_notifier(container: Container) -> DiscordWebhookNotifier:
    config: PrecacheConfig = container.resolve("precache_config")
    writer: ReportFileWriter = container.resolve("report_file_writer")
    return DiscordWebhookNotifier(config.discord_webhook_url, attachment_path=writer.report_path)


# --- 后台任务 ---

async def send_webhook_task(container: Container, summary: RunSummary):
    """后台任务：发送 webhook。失败以异常形式交给任务管理器的失败通道。"""
    notifier: DiscordWebhookNotifier = container.resolve("webhook_notifier")
    await notifier.publish(summary)


# --- 钩子实现 ---

async def publish_run_summary(summary: RunSummary, container: Container):
    """钩子实现: 监听 precache_completed。报告文件内联写入，webhook 交给后台任务。"""
    config: PrecacheConfig = container.resolve("precache_config")

    if config.writes_log_file:
        writer: ReportFileWriter = container.resolve("report_file_writer")
        await writer.publish(summary)

    if config.webhook_enabled:
        task_manager: BackgroundTaskManager = container.resolve("task_manager")
        if not task_manager.submit_task(send_webhook_task, summary):
            logger.error("Discord webhook was not dispatched: background task manager unavailable.")


# --- 主注册函数 ---

def register_plugin(container: Container, hook_manager: HookManager):
    logger.info(f"--> 正在注册 [{PLUGIN_NAME}] 插件...")

    container.register("report_file_writer", _create_report_file_writer, singleton=True)
    container.register("webhook_notifier", _create_webhook_notifier, singleton=True)

    hook_manager.add_implementation(
        PRECACHE_COMPLETED, publish_run_summary, plugin_name=PLUGIN_NAME
    )

    logger.info(f"插件 [{PLUGIN_NAME}] 注册成功。")
