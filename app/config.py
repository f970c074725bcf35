"""Application configuration loaded from config.yaml + environment variables."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings

_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    if _CONFIG_PATH.exists():
        with open(_CONFIG_PATH) as f:
            return yaml.safe_load(f) or {}
    return {}


_yaml = _load_yaml()


class NotificationConfig(BaseSettings):
    enabled: bool = True
    admin_email: str = ""
    admin_phone: str = ""
    email_from: str = "Servis <noreply@servis.local>"
    resend_api_key: str = ""
    sms_gateway_url: str = ""
    sms_api_key: str = ""
    sms_timeout: float = 10.0

    model_config = {"env_prefix": "NOTIFY_"}


class WorkflowConfig(BaseSettings):
    # Off only for data-repair runs; normal traffic walks the order table one step at a time.
    enforce_order_transitions: bool = True

    model_config = {"env_prefix": "WORKFLOW_"}


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/servis.db"
    app_url: str = "http://localhost:8000"
    log_level: str = "INFO"
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def get_settings() -> Settings:
    """Build Settings by merging YAML defaults with env overrides."""
    y = _yaml
    notif = NotificationConfig(**y.get("notifications", {}))
    wf = WorkflowConfig(**y.get("workflow", {}))
    overrides = {}
    db_url = y.get("database", {}).get("url")
    if db_url:
        overrides["database_url"] = db_url
    for key in ("app_url", "log_level"):
        if key in y:
            overrides[key] = y[key]
    return Settings(notifications=notif, workflow=wf, **overrides)

