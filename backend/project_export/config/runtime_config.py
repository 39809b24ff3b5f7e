"""
运行期配置 - 读取 config/projectexport_runtime.yaml

职责：
- 加载并发/路径/报表/打包/权威库查询等运行参数
- 提供环境变量覆盖机制
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class ConcurrencyConfig(BaseModel):
    """并发配置（每个导出任务独立线程池：Worker A + Worker B）"""

    max_workers: int = 2


class ReportConfig(BaseModel):
    """元数据报表配置"""

    sheet_name: str = "images"
    file_name: str = "metadata.xlsx"
    institution_label: str = "National Library of Israel record"


class ArchiveConfig(BaseModel):
    """ZIP打包配置"""

    buffer_size: int = 64 * 1024
    sort_entries: bool = True
    compression: str = "deflated"  # deflated | stored


class AuthorityConfig(BaseModel):
    """权威库（VIAF等）查询配置"""

    enabled: bool = True
    timeout_sec: float = 30.0
    database_priority: list[str] = Field(
        default_factory=lambda: ["j9u", "lc", "bav", "gnd", "isni"]
    )
    url_templates: dict[str, str] = Field(
        default_factory=lambda: {
            "lc": "https://id.loc.gov/authorities/names/{id}.marcxml.xml",
            "gnd": "https://d-nb.info/gnd/{id}/about/marcxml",
        }
    )


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"
    log_to_file: bool = False
    log_file: str = "logs/projectexport.log"


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    # 基础路径
    storage_dir: Path = Path("storage")
    plugin_config_path: Path = Path("config/plugin_intranda_workflow_projectexport.yaml")

    # 各子配置
    concurrency: ConcurrencyConfig = Field(default_factory=ConcurrencyConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)
    authority: AuthorityConfig = Field(default_factory=AuthorityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "PROJECTEXPORT_",
        "env_nested_delimiter": "__",
        "arbitrary_types_allowed": True,
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        runtime_opts = data.get("runtime_options", {})

        config = cls(
            concurrency=ConcurrencyConfig(**cls._extract(runtime_opts, "concurrency")),
            report=ReportConfig(**cls._extract(runtime_opts, "report")),
            archive=ArchiveConfig(**cls._extract(runtime_opts, "archive")),
            authority=AuthorityConfig(**cls._extract(runtime_opts, "authority")),
            logging=LoggingConfig(**cls._extract(runtime_opts, "logging")),
        )

        paths = data.get("paths", {})
        if "storage_dir" in paths:
            config.storage_dir = Path(paths["storage_dir"])
        if "plugin_config_path" in paths:
            config.plugin_config_path = Path(paths["plugin_config_path"])

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key, {}) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            else:
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        if not self.plugin_config_path.is_absolute():
            self.plugin_config_path = (base_dir / self.plugin_config_path).resolve()
        if not self.storage_dir.is_absolute():
            self.storage_dir = (base_dir / self.storage_dir).resolve()

    def get_job_dir(self, job_id: str) -> Path:
        """获取任务工作目录"""
        return self.storage_dir / "jobs" / job_id

    def ensure_dirs(self) -> None:
        """确保必要目录存在"""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        (self.storage_dir / "jobs").mkdir(exist_ok=True)


# 全局配置实例
_config: RuntimeConfig | None = None

DEFAULT_RUNTIME_PATH = Path("config/projectexport_runtime.yaml")


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_RUNTIME_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_RUNTIME_PATH
    _config = RuntimeConfig.from_yaml(path)
    return _config
