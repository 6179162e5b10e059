# plugins/core_precache/scanner.py
import re
import logging
from pathlib import Path
from typing import List, Optional

from .classifier import classify, is_resource_type
from .contracts import AddOutcome, ArchiveListing, ArchiveReaderInterface, ScanReport
from .resource_set import ResourceSet

logger = logging.getLogger(__name__)

PACKAGE_GLOB = "*.vpk"
# 分卷归档的数据部分（pak01_000.vpk, pak01_001.vpk ...）不包含目录结构
SECONDARY_PART_PATTERN = re.compile(r"_\d{3}\.vpk$", re.IGNORECASE)


def is_secondary_part(archive_path: Path) -> bool:
    return SECONDARY_PART_PATTERN.search(archive_path.name) is not None


def discover_archives(root: Path) -> List[Path]:
    """递归查找所有主归档，按路径排序以保证扫描顺序确定。"""
    return sorted(
        path for path in root.rglob(PACKAGE_GLOB)
        if path.is_file() and not is_secondary_part(path)
    )


class ArchiveScanner:
    """
    扫描目录树中的 VPK 归档，把白名单内的资源路径合并进 ResourceSet。
    单个归档的失败只会被记录，不会中止整个扫描。
    """

    def __init__(self, resource_set: ResourceSet, reader: ArchiveReaderInterface):
        self._resource_set = resource_set
        self._reader = reader
        self.last_report: Optional[ScanReport] = None

    def scan(self, root: Path) -> ScanReport:
        report = ScanReport()
        self.last_report = report
        root = Path(root)

        if not root.is_dir():
            logger.warning(f"Assets directory not found: '{root}'. Skipping VPK loading.")
            return report

        report.archives_skipped = sum(
            1 for path in root.rglob(PACKAGE_GLOB) if path.is_file() and is_secondary_part(path)
        )

        for archive_path in discover_archives(root):
            package_name = archive_path.stem
            logger.info(f"Reading Workshop Package: '{package_name}'")

            try:
                with self._reader.open(archive_path) as listing:
                    self._merge(listing, report)
            except Exception as e:
                report.archives_failed += 1
                reason = getattr(e, "reason", None) or str(e) or e.__class__.__name__
                logger.error(f"Unable to read package: '{package_name}' ({reason})")
                continue

            report.archives_read += 1

        logger.info(
            f"Scan finished: {report.archives_read} package(s) read, {report.archives_failed} failed, "
            f"{self._resource_set.count} resource(s) collected."
        )
        return report

    def _merge(self, listing: ArchiveListing, report: ScanReport) -> None:
        if listing.is_empty:
            logger.debug(f"Package '{listing.path.stem}' has no entries.")
            return

        for bucket, entries in listing.entries.items():
            if not is_resource_type(bucket):
                continue

            for entry in entries:
                outcome = self._resource_set.add(entry.full_path)
                report.record(outcome)
                if outcome is AddOutcome.DUPLICATE:
                    logger.warning(f"Duplicate entry for resource: '{classify(entry.full_path).path}'")
