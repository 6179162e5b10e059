# plugins/core_reporting/contracts.py

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from plugins.core_precache.contracts import RunSummary

REPORT_FILE_NAME = "precache_log.txt"


class WebhookDeliveryError(Exception):
    """webhook 请求失败（网络错误或非 2xx 响应）。"""
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ReportSinkInterface(ABC):
    """接收一次预缓存周期的摘要。"""

    @abstractmethod
    async def publish(self, summary: RunSummary) -> Optional[Path]:
        raise NotImplementedError
