# plugins/core_reporting/webhook.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import httpx

from plugins.core_precache.contracts import RunSummary
from .contracts import ReportSinkInterface, WebhookDeliveryError, REPORT_FILE_NAME

logger = logging.getLogger(__name__)

EMBED_TITLE = "📦 Resource Precacher"
EMBED_DESCRIPTION = "Precache completed successfully."
EMBED_COLOR = 0x00D166


def build_payload(summary: RunSummary) -> Dict[str, Any]:
    return {
        "embeds": [
            {
                "title": EMBED_TITLE,
                "description": EMBED_DESCRIPTION,
                "color": EMBED_COLOR,
                "fields": [
                    {"name": "Server", "value": summary.hostname, "inline": False},
                    {"name": "Total Files", "value": str(summary.count), "inline": True},
                    {"name": "Time", "value": f"{summary.elapsed_ms}ms", "inline": True},
                    {"name": "Timestamp", "value": summary.formatted_timestamp, "inline": False},
                ]
            }
        ]
    }


class DiscordWebhookNotifier(ReportSinkInterface):
    """
    以 multipart 表单向 Discord webhook 发送摘要。
    payload_json 字段携带 embed；报告文件存在时作为 files[0] 附件一并发送。
    """

    def __init__(
        self,
        webhook_url: str,
        attachment_path: Optional[Path] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not webhook_url:
            raise ValueError("DiscordWebhookNotifier requires a 'webhook_url'.")
        self.webhook_url = webhook_url
        self.attachment_path = attachment_path
        self.timeout = timeout
        self._transport = transport

    async def _build_files(self, summary: RunSummary) -> Dict[str, tuple]:
        files: Dict[str, tuple] = {
            "payload_json": (None, json.dumps(build_payload(summary)), "application/json"),
        }
        if self.attachment_path is not None and self.attachment_path.is_file():
            async with aiofiles.open(self.attachment_path, mode='rb') as f:
                content = await f.read()
            files["files[0]"] = (REPORT_FILE_NAME, content, "text/plain")
        return files

    async def publish(self, summary: RunSummary) -> Optional[Path]:
        files = await self._build_files(summary)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.webhook_url, files=files)
        except httpx.HTTPError as e:
            raise WebhookDeliveryError(f"Failed to send Discord webhook: {e}") from e

        if response.is_success:
            logger.info("Discord webhook sent successfully.")
            return None

        raise WebhookDeliveryError(
            f"Discord webhook returned status: {response.status_code}",
            status_code=response.status_code
        )
