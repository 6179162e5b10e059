# plugins/core_reporting/log_file.py
import logging
import posixpath
from pathlib import Path
from typing import Optional

import aiofiles

from plugins.core_precache.contracts import RunSummary
from .contracts import ReportSinkInterface, REPORT_FILE_NAME

logger = logging.getLogger(__name__)

BANNER = "=" * 44


def render_report(summary: RunSummary) -> str:
    lines = [
        BANNER,
        f"Precache Log - {summary.formatted_timestamp}",
        f"Server: {summary.hostname}",
        f"Precache Time: {summary.elapsed_ms}ms",
        BANNER,
        "",
        f"Total files precached: {summary.count}",
        "",
    ]

    for index, resource_path in enumerate(summary.resources, start=1):
        lines.append(f"[{index}] {posixpath.basename(resource_path)}")
        lines.append(f"    Path: {resource_path}")
        lines.append("")

    lines.append(BANNER)
    return "\n".join(lines) + "\n"


class ReportFileWriter(ReportSinkInterface):
    """把摘要写入固定位置的纯文本报告，每个周期覆盖上一次的文件。"""

    def __init__(self, logs_dir: Path):
        self.logs_dir = Path(logs_dir)

    @property
    def report_path(self) -> Path:
        return self.logs_dir / REPORT_FILE_NAME

    async def publish(self, summary: RunSummary) -> Optional[Path]:
        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(self.report_path, mode='w', encoding='utf-8') as f:
                await f.write(render_report(summary))
        except OSError as e:
            logger.error(f"Failed to write precache log file: {e}")
            return None

        logger.info(f"Precache log written to: {self.report_path}")
        return self.report_path
