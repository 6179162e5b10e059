# tests/test_app_lifecycle.py
"""
端到端测试：从插件加载、启动扫描，到宿主触发预缓存事件、报告与 webhook。
core_logging 被禁用，以免 dictConfig 替换 pytest 的日志捕获处理器。
"""

import json
from pathlib import Path

import httpx
import pytest
import vpk

from precacher.app import InMemoryManifest, PrecacherApp
from plugins.core_precache.contracts import COLLECT_PRECACHE_RESOURCES
from plugins.core_reporting.contracts import WebhookDeliveryError
from plugins.core_reporting.webhook import DiscordWebhookNotifier

pytestmark = pytest.mark.asyncio

WEBHOOK_URL = "https://discord.test/api/webhooks/1/token"


def build_package(source_dir: Path, package_path: Path, files: dict) -> None:
    for relative, content in files.items():
        target = source_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    package_path.parent.mkdir(parents=True, exist_ok=True)
    vpk.new(str(source_dir)).save(str(package_path))


@pytest.fixture
def populated_module_dir(tmp_path: Path, module_dir: Path) -> Path:
    assets = module_dir / "assets"
    build_package(tmp_path / "src_a", assets / "weapons" / "pak01_dir.vpk", {
        "models/weapons/knife.vmdl_c": b"m",
        "materials/weapons/knife.vmat_c": b"t",
        "scripts/notes.txt": b"ignored",
    })
    build_package(tmp_path / "src_b", assets / "maps" / "arena.vpk", {
        "models/weapons/knife.vmdl_c": b"m",
        "sounds/arena/ambient.vsnd_c": b"s",
    })
    # 分卷数据部分，内容无效，一旦被打开就会产生错误
    (assets / "weapons" / "pak01_000.vpk").write_bytes(b"not a directory file")
    return module_dir


def write_config(module_dir: Path, **values) -> None:
    (module_dir / "precacher.json").write_text(json.dumps(values), encoding="utf-8")


def make_app(module_dir: Path) -> PrecacherApp:
    return PrecacherApp(module_dir=module_dir, disabled_plugins=["core_logging"])


async def test_precache_event_registers_scanned_resources(populated_module_dir):
    write_config(populated_module_dir, Log=False, LogFile=False)
    manifest = InMemoryManifest(handle=0x10)

    async with make_app(populated_module_dir) as app:
        resource_set = app.container.resolve("resource_set")
        report = app.container.resolve("archive_scanner").last_report
        await app.precache(manifest)

        assert set(manifest.resources) == {
            "models/weapons/knife.vmdl",
            "materials/weapons/knife.vmat",
            "sounds/arena/ambient.vsnd",
        }
        assert len(manifest.resources) == resource_set.count
        assert manifest.resources == list(resource_set.all())
        assert report.archives_read == 2
        assert report.archives_failed == 0
        assert report.archives_skipped == 1
        assert report.duplicates == 1

    assert not (populated_module_dir.parent / "logs" / "precache_log.txt").exists()


async def test_missing_assets_directory_starts_with_empty_set(module_dir):
    manifest = InMemoryManifest()

    async with make_app(module_dir) as app:
        await app.precache(manifest)
        assert app.container.resolve("resource_set").count == 0

    assert manifest.resources == []


async def test_log_file_written_when_enabled(populated_module_dir):
    write_config(populated_module_dir, Log=False, LogFile=True)

    async with make_app(populated_module_dir) as app:
        await app.precache(InMemoryManifest())

    report = (populated_module_dir.parent / "logs" / "precache_log.txt").read_text(encoding="utf-8")
    assert "Total files precached: 3" in report
    assert "    Path: sounds/arena/ambient.vsnd" in report


async def test_webhook_is_sent_in_background_with_report(populated_module_dir):
    write_config(populated_module_dir, Log=False, DiscordWebhookUrl=WEBHOOK_URL)
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        request.read()
        requests.append(request)
        return httpx.Response(204)

    app = make_app(populated_module_dir)
    report_path = populated_module_dir.parent / "logs" / "precache_log.txt"
    app.container.register(
        "webhook_notifier",
        lambda: DiscordWebhookNotifier(WEBHOOK_URL, attachment_path=report_path, transport=httpx.MockTransport(handler))
    )

    async with app:
        await app.precache(InMemoryManifest())
        await app.task_manager.join()

    assert len(requests) == 1
    assert b'filename="precache_log.txt"' in requests[0].content
    assert app.task_manager.failures == []


async def test_webhook_failure_is_observable_and_isolated(populated_module_dir):
    write_config(populated_module_dir, Log=False, DiscordWebhookUrl=WEBHOOK_URL)
    manifest = InMemoryManifest()

    app = make_app(populated_module_dir)
    app.container.register(
        "webhook_notifier",
        lambda: DiscordWebhookNotifier(WEBHOOK_URL, transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    )

    async with app:
        await app.precache(manifest)

    assert len(manifest.resources) == 3
    assert len(app.task_manager.failures) == 1
    failure = app.task_manager.failures[0]
    assert failure.task_name == "send_webhook_task"
    assert isinstance(failure.exception, WebhookDeliveryError)
    assert failure.exception.status_code == 500


async def test_plugins_can_contribute_extra_resources(module_dir):
    app = make_app(module_dir)

    async def contribute(resources: list) -> list:
        return resources + ["models\\extra\\statue.vmdl_c", "scripts/extra.lua"]

    app.hook_manager.add_implementation(COLLECT_PRECACHE_RESOURCES, contribute, plugin_name="<test>")
    manifest = InMemoryManifest()

    async with app:
        await app.precache(manifest)

    assert manifest.resources == ["models/extra/statue.vmdl"]


async def test_restart_rebuilds_resource_set(populated_module_dir):
    app = make_app(populated_module_dir)

    async with app:
        first = app.container.resolve("resource_set")
        assert first.count == 3

    assert first.count == 0

    async with app:
        second = app.container.resolve("resource_set")
        assert second is not first
        assert second.count == 3


async def test_precache_before_startup_is_an_error(module_dir):
    app = make_app(module_dir)
    with pytest.raises(RuntimeError, match="must be started"):
        await app.precache(InMemoryManifest())
