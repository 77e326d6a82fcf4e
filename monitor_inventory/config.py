"""
配置加载模块

从 config.yaml 加载配置，支持 Pydantic 验证和环境变量覆盖。

环境变量使用 MONITOR_INVENTORY_ 前缀，嵌套字段用双下划线分隔，
例如 MONITOR_INVENTORY_STORE__BASE_URL。环境变量优先于配置文件。
"""

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreConfig(BaseModel):
    """对象存储配置"""
    base_url: str = "http://127.0.0.1:5601/api/saved_objects"
    api_key: Optional[str] = None
    monitor_type: str = "synthetics-monitor"
    page_size: int = Field(default=1000, ge=1, le=10000)
    timeout: float = 10.0
    close_timeout: float = 5.0


class LocationsConfig(BaseModel):
    """位置目录服务配置"""
    base_url: str = "http://127.0.0.1:5601/internal/synthetics/service"
    api_key: Optional[str] = None
    timeout: float = 10.0


class APIConfig(BaseModel):
    """API 服务配置"""
    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: List[str] = ["http://localhost:8080", "http://127.0.0.1:8080"]


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = "INFO"
    file: Optional[str] = None


class AppConfig(BaseSettings):
    """应用配置（完整配置）"""
    model_config = SettingsConfigDict(
        env_prefix="MONITOR_INVENTORY_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    store: StoreConfig = Field(default_factory=StoreConfig)
    locations: LocationsConfig = Field(default_factory=LocationsConfig)
    api: APIConfig = Field(default_factory=APIConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # 环境变量覆盖配置文件（配置文件内容通过 init 参数传入）
        return env_settings, init_settings


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 MONITOR_INVENTORY_CONFIG
    3. 默认路径 config.yaml
    """
    if config_path is None:
        config_path = os.environ.get("MONITOR_INVENTORY_CONFIG", "config.yaml")

    config_file = Path(config_path)

    if config_file.exists():
        with open(config_file, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
        if raw_config:
            # 日志文件路径相对于配置文件所在目录
            log_file = (raw_config.get("logging") or {}).get("file")
            if log_file and not Path(log_file).is_absolute():
                raw_config["logging"]["file"] = str((config_file.resolve().parent / log_file).resolve())
            return AppConfig(**raw_config)

    # 配置文件不存在时使用默认配置
    return AppConfig()


# 全局配置实例（延迟加载）
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """获取全局配置实例（单例模式）"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config():
    """重置配置（主要用于测试）"""
    global _config
    _config = None
