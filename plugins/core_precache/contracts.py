# plugins/core_precache/contracts.py

from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import ContextManager, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field

# --- 钩子名称 ---

# 通知型：一次预缓存周期结束后携带 RunSummary 触发
PRECACHE_COMPLETED = "precache_completed"
# 过滤型：扫描完成后，允许其他插件追加资源路径 (List[str] -> List[str])
COLLECT_PRECACHE_RESOURCES = "collect_precache_resources"


class AddOutcome(str, Enum):
    """分类并加入资源集合的结果。"""
    ADDED = "added"
    DUPLICATE = "duplicate"
    REJECTED_TYPE = "rejected_type"

    @property
    def added(self) -> bool:
        return self is AddOutcome.ADDED


class Classification(BaseModel):
    path: str
    extension: str
    accepted: bool
    model_config = ConfigDict(frozen=True)


class ArchiveEntry(BaseModel):
    """归档目录中的一个条目。bucket 是归档内保存的原始扩展名（例如 vmdl_c）。"""
    bucket: str
    full_path: str
    model_config = ConfigDict(frozen=True)


class ArchiveListing(BaseModel):
    """一次打开归档得到的目录结构：bucket -> 条目列表。"""
    path: Path
    entries: Dict[str, List[ArchiveEntry]] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not any(self.entries.values())


class ArchiveReadError(Exception):
    """归档无法打开或解析。"""
    def __init__(self, archive_path: Path, reason: str):
        self.archive_path = archive_path
        self.reason = reason
        super().__init__(f"{archive_path.name}: {reason}")


class ArchiveReaderInterface(ABC):
    """
    归档读取能力。open 返回一个上下文管理器，保证读取器资源在任何退出路径上被释放。
    """

    @abstractmethod
    def open(self, archive_path: Path) -> ContextManager[ArchiveListing]:
        raise NotImplementedError


class ScanReport(BaseModel):
    archives_read: int = 0
    archives_skipped: int = 0
    archives_failed: int = 0
    added: int = 0
    duplicates: int = 0
    rejected: int = 0

    def record(self, outcome: AddOutcome) -> None:
        if outcome is AddOutcome.ADDED:
            self.added += 1
        elif outcome is AddOutcome.DUPLICATE:
            self.duplicates += 1
        else:
            self.rejected += 1


class RunSummary(BaseModel):
    """一次预缓存周期的摘要，交给报告插件后即丢弃。"""
    count: int
    elapsed_ms: int
    hostname: str
    timestamp: datetime
    resources: Tuple[str, ...] = ()
    model_config = ConfigDict(frozen=True)

    @property
    def formatted_timestamp(self) -> str:
        return self.timestamp.strftime("%Y-%m-%d %H:%M:%S")
