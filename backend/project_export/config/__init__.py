"""
配置层 - 加载运行期配置与导出插件配置

职责：
- 加载 config/projectexport_runtime.yaml（运行期参数）
- 加载 config/plugin_intranda_workflow_projectexport.yaml（导出配置，四级回退）
- 提供类型安全的配置访问接口
"""

from .export_config import (
    ExportConfigEntry,
    ExportConfigLoader,
    ExportPluginConfig,
    load_export_config,
)
from .runtime_config import RuntimeConfig, get_config, reload_config

__all__ = [
    "ExportConfigEntry",
    "ExportConfigLoader",
    "ExportPluginConfig",
    "load_export_config",
    "RuntimeConfig",
    "get_config",
    "reload_config",
]
