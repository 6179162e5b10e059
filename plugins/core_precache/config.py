# plugins/core_precache/config.py
import os
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "precacher.json"
ASSETS_DIR_NAME = "assets"
LOGS_DIR_NAME = "logs"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class PrecacheConfig(BaseModel):
    """插件配置。JSON 文件中的键名沿用宿主插件配置的 PascalCase 约定。"""
    config_version: int = Field(default=1, alias="ConfigVersion")
    log: bool = Field(default=True, alias="Log")
    log_file: bool = Field(default=False, alias="LogFile")
    discord_webhook_url: Optional[str] = Field(default=None, alias="DiscordWebhookUrl")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("discord_webhook_url")
    @classmethod
    def empty_url_disables_webhook(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def webhook_enabled(self) -> bool:
        return self.discord_webhook_url is not None

    @property
    def writes_log_file(self) -> bool:
        # webhook 需要把报告文件作为附件发送
        return self.log_file or self.webhook_enabled


def _parse_bool(name: str, value: str) -> Optional[bool]:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    logger.warning(f"Ignoring environment variable {name}={value!r}: not a boolean.")
    return None


def _env_overrides() -> dict:
    overrides = {}
    for env_name, key in (("PRECACHER_LOG", "Log"), ("PRECACHER_LOG_FILE", "LogFile")):
        raw = os.getenv(env_name)
        if raw is not None:
            parsed = _parse_bool(env_name, raw)
            if parsed is not None:
                overrides[key] = parsed

    webhook_url = os.getenv("PRECACHER_DISCORD_WEBHOOK_URL")
    if webhook_url is not None:
        overrides["DiscordWebhookUrl"] = webhook_url
    return overrides


def config_path_for(module_dir: Path) -> Path:
    return Path(os.getenv("PRECACHER_CONFIG") or Path(module_dir) / CONFIG_FILE_NAME)


def load_config(module_dir: Path) -> PrecacheConfig:
    """
    读取 JSON 配置文件并应用环境变量覆盖。
    文件不存在时使用默认值；文件损坏时记录错误并使用默认值。
    """
    config_path = config_path_for(module_dir)
    data: dict = {}

    if config_path.is_file():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("top-level JSON value must be an object")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read config file '{config_path}': {e}. Using defaults.")
            data = {}
    else:
        logger.info(f"Config file '{config_path}' not found. Using defaults.")

    data.update(_env_overrides())

    try:
        return PrecacheConfig.model_validate(data)
    except ValidationError as e:
        logger.error(f"Invalid configuration in '{config_path}': {e}. Using defaults.")
        return PrecacheConfig.model_validate(_env_overrides())


def assets_directory(module_dir: Path) -> Path:
    return Path(module_dir) / ASSETS_DIR_NAME


def logs_directory(module_dir: Path) -> Path:
    """报告目录位于插件目录的上一级（plugins/<name> -> plugins/logs）。"""
    return Path(module_dir).parent / LOGS_DIR_NAME
