# config.py
"""
medintake settings
YAML file first, then environment variables on top
"""
import os
from typing import Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = "medintake.yaml"

ENV_OVERRIDES = {
    "DIFY_API_KEY": ("dify", "api_key"),
    "DIFY_BASE_URL": ("dify", "base_url"),
    "DATABASE_URL": ("database", "url"),
    "LOG_LEVEL": ("logging", "level"),
    "PORT": ("server", "port"),
}


class DifySettings(BaseModel):
    api_key: str = ""
    base_url: str = "https://api.dify.ai/v1"
    user: str = "medical-recognition-system"
    query: str = "请识别这张医疗记录图片中的所有信息，以JSON格式返回结构化数据"
    timeout: float = 60.0
    max_retries: int = 3
    backoff_seconds: float = 2.0


class DatabaseSettings(BaseModel):
    url: str = "sqlite:///medintake.db"
    echo: bool = False


class LoggingSettings(BaseModel):
    level: str = "INFO"


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    pipeline_config: str = "intake_pipeline.yaml"


class Settings(BaseModel):
    dify: DifySettings = Field(default_factory=DifySettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


def load_yaml(path):
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_settings(path: Optional[str] = None) -> Settings:
    """Read settings from `path` (or medintake.yaml if present) plus env"""
    path = path or os.environ.get("MEDINTAKE_CONFIG", DEFAULT_CONFIG_PATH)
    data = load_yaml(path) if os.path.exists(path) else {}

    for env_key, (section, key) in ENV_OVERRIDES.items():
        if env_key in os.environ:
            data.setdefault(section, {})[key] = os.environ[env_key]

    return Settings.model_validate(data)
