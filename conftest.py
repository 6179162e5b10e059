# conftest.py

import pytest
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from plugins.core_precache.classifier import extension_of
from plugins.core_precache.contracts import (
    ArchiveEntry,
    ArchiveListing,
    ArchiveReadError,
    ArchiveReaderInterface
)


class FakeArchiveReader(ArchiveReaderInterface):
    """
    以文件名为键的内存归档读取器。
    记录每次 open 与释放，便于断言读取器资源在所有退出路径上都被释放。
    """

    def __init__(self, archives: Optional[Dict[str, List[str]]] = None, broken: Iterable[str] = ()):
        self.archives = archives or {}
        self.broken = set(broken)
        self.opened: List[str] = []
        self.released: List[str] = []

    @contextmanager
    def open(self, archive_path: Path):
        self.opened.append(archive_path.name)
        try:
            if archive_path.name in self.broken:
                raise ArchiveReadError(archive_path, "invalid VPK signature")

            entries: Dict[str, List[ArchiveEntry]] = {}
            for full_path in self.archives.get(archive_path.name, []):
                bucket = extension_of(full_path.replace("\\", "/"))
                entries.setdefault(bucket, []).append(ArchiveEntry(bucket=bucket, full_path=full_path))
            yield ArchiveListing(path=archive_path, entries=entries)
        finally:
            self.released.append(archive_path.name)


@pytest.fixture
def fake_reader_factory():
    return FakeArchiveReader


@pytest.fixture
def make_archive_tree(tmp_path: Path):
    """在 tmp_path/assets 下按相对路径创建占位归档文件，返回 assets 目录。"""
    def _make(*relative_paths: str) -> Path:
        assets_dir = tmp_path / "plugin" / "assets"
        assets_dir.mkdir(parents=True, exist_ok=True)
        for relative in relative_paths:
            archive = assets_dir / relative
            archive.parent.mkdir(parents=True, exist_ok=True)
            archive.write_bytes(b"\x00")
        return assets_dir
    return _make


@pytest.fixture
def module_dir(tmp_path: Path) -> Path:
    """模拟插件目录：<tmp>/plugin，报告写入 <tmp>/logs。"""
    plugin_dir = tmp_path / "plugin"
    plugin_dir.mkdir(parents=True, exist_ok=True)
    return plugin_dir


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """避免开发者本地的环境变量影响测试。"""
    for name in (
        "PRECACHER_MODULE_DIR",
        "PRECACHER_CONFIG",
        "PRECACHER_LOG",
        "PRECACHER_LOG_FILE",
        "PRECACHER_DISCORD_WEBHOOK_URL",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
