# plugins/core_precache/archive.py
import logging
import struct
from collections import defaultdict
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List

import vpk

from .classifier import extension_of, normalize_path
from .contracts import ArchiveEntry, ArchiveListing, ArchiveReadError, ArchiveReaderInterface

logger = logging.getLogger(__name__)


class VpkArchiveReader(ArchiveReaderInterface):
    """
    基于 `vpk` 库的归档读取器。

    只读取目录结构，不读取文件数据，因此只需要主归档（`_dir.vpk` 或单文件归档）。
    条目按归档中保存的原始扩展名分桶，桶内顺序与归档索引顺序一致。
    """

    def __init__(self, path_encoding: str = "utf-8"):
        self.path_encoding = path_encoding

    @contextmanager
    def open(self, archive_path: Path) -> Iterator[ArchiveListing]:
        # vpk.open 只解析文件头，索引在遍历时才被解析
        try:
            package = vpk.open(str(archive_path), path_enc=self.path_encoding)
            listing = ArchiveListing(path=archive_path, entries=self._bucket_entries(package))
        except (OSError, ValueError, struct.error) as e:
            raise ArchiveReadError(archive_path, str(e) or e.__class__.__name__) from e

        yield listing

    @staticmethod
    def _bucket_entries(package: "vpk.VPK") -> Dict[str, List[ArchiveEntry]]:
        buckets: Dict[str, List[ArchiveEntry]] = defaultdict(list)
        for full_path in package:
            bucket = extension_of(normalize_path(full_path))
            buckets[bucket].append(ArchiveEntry(bucket=bucket, full_path=full_path))
        return dict(buckets)
