"""
导出配置加载器 - 读取插件配置 plugin_intranda_workflow_projectexport.yaml

职责：
- 解析YAML并提供类型安全访问
- 按四级回退顺序解析项目配置
- 缓存加载结果（避免重复解析）

回退顺序（先命中者优先）：
    1. 项目名与步骤名都匹配
    2. 步骤名匹配且项目为 *
    3. 项目名匹配且步骤为 *
    4. 项目与步骤都为 *

未给出步骤名（按项目触发导出）时跳过 1、2 级；第 3 级先取步骤为 * 的条目，
再取项目名匹配的任意条目。

使用方式：
    plugin_config = ExportConfigLoader.load("config/plugin_intranda_workflow_projectexport.yaml")
    entry = plugin_config.resolve("SampleProject")
"""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from ..interfaces import ConfigurationMissingError
from ..models import ExportSettings

WILDCARD = "*"

EntryMatcher = Callable[["ExportConfigEntry"], bool]


class ExportConfigEntry(BaseModel):
    """单条配置（project/step 可为通配符 *）"""
    project: str = WILDCARD
    step: str = WILDCARD
    finish_step_name: str = Field(..., alias="finishedStepName")
    close_step_name: str = Field(..., alias="closeStepName")
    image_folder: str = Field("media", alias="imageFolder")
    allow_zip_download: bool = Field(True, alias="allowZipDownload")
    export_directory: Path | None = Field(None, alias="exportDirectory")

    model_config = {"populate_by_name": True}


def _matchers(project_name: str, step_name: str | None) -> list[EntryMatcher]:
    """按回退顺序构造匹配器列表"""
    matchers: list[EntryMatcher] = []
    if step_name is not None:
        matchers.append(lambda e: e.project == project_name and e.step == step_name)
        matchers.append(lambda e: e.project == WILDCARD and e.step == step_name)
    matchers.append(lambda e: e.project == project_name and e.step == WILDCARD)
    if step_name is None:
        # 按项目触发时，项目名精确匹配的条目优先于任何通配项目
        matchers.append(lambda e: e.project == project_name)
    matchers.append(lambda e: e.project == WILDCARD and e.step == WILDCARD)
    return matchers


class ExportPluginConfig(BaseModel):
    """插件配置（config 列表）"""
    entries: list[ExportConfigEntry] = Field(default_factory=list, alias="config")

    model_config = {"populate_by_name": True}

    def find(self, project_name: str, step_name: str | None = None) -> ExportConfigEntry | None:
        """按回退顺序查找，未命中返回 None"""
        for matches in _matchers(project_name, step_name):
            entry = next((e for e in self.entries if matches(e)), None)
            if entry is not None:
                return entry
        return None

    def resolve(self, project_name: str, step_name: str | None = None) -> ExportConfigEntry:
        """解析项目配置，未命中任一层级即为致命错误"""
        entry = self.find(project_name, step_name)
        if entry is None:
            raise ConfigurationMissingError(
                f"项目 '{project_name}' 没有匹配的导出配置"
            )
        return entry

    def build_settings(
        self,
        project_name: str,
        include_all_finished: bool = False,
        export_directory: str | Path | None = None,
    ) -> ExportSettings:
        """构造本次导出的不可变任务配置"""
        entry = self.resolve(project_name)
        directory = export_directory or entry.export_directory
        if not directory:
            raise ConfigurationMissingError(
                f"项目 '{project_name}' 的导出配置缺少 exportDirectory"
            )
        return ExportSettings(
            project_name=project_name,
            finish_step_name=entry.finish_step_name,
            close_step_name=entry.close_step_name,
            image_folder=entry.image_folder,
            allow_zip_download=entry.allow_zip_download,
            export_directory=Path(directory),
            include_all_finished=include_all_finished,
        )


class ExportConfigLoader:
    """导出配置加载器（缓存）"""

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, config_path: str | Path) -> ExportPluginConfig:
        """加载并缓存插件配置"""
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationMissingError(f"导出配置文件不存在: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        return ExportPluginConfig(**data)

    @classmethod
    def reload(cls, config_path: str | Path) -> ExportPluginConfig:
        """强制重新加载（清除缓存）"""
        cls.load.cache_clear()
        return cls.load(config_path)


def load_export_config(config_path: str | Path | None = None) -> ExportPluginConfig:
    """加载插件配置（默认取运行期配置中的路径）"""
    if config_path is None:
        from .runtime_config import get_config

        config_path = get_config().plugin_config_path
    return ExportConfigLoader.load(config_path)
