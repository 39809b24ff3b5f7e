"""
就绪校验 - 判断项目是否允许导出

职责：
1. 空项目检查（先于计数查询）
2. 统计未达到完成步骤的条目数
3. 生成面向用户的校验消息

测试要点：
- test_empty_project: 空项目单独提示
- test_unfinished_count: 未完成条目计数
- test_ready_project: 计数为0允许导出
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from ..interfaces import IItemRegistry, ReadinessError
from ..models import ExportSettings

logger = logging.getLogger(__name__)

EMPTY_PROJECT_MESSAGE = "项目 '{project}' 中没有可导出的条目"
OPEN_STEPS_MESSAGE = "项目 '{project}' 有 {count} 个条目尚未完成"
PROJECT_SIZE_MESSAGE = "本次导出包含 {size} 个条目"


class ReadinessReport(BaseModel):
    """就绪校验结果"""
    project_name: str
    project_size: int = 0
    unfinished_count: int = 0
    export_allowed: bool = False
    validation_error: str | None = None
    size_message: str | None = None

    def raise_for_status(self) -> None:
        """未就绪时抛出 ReadinessError"""
        if not self.export_allowed:
            raise ReadinessError(self.validation_error or f"项目未就绪: {self.project_name}")


class ReadinessValidator:
    """就绪校验器"""

    def __init__(self, registry: IItemRegistry):
        self.registry = registry

    def validate(self, settings: ExportSettings) -> ReadinessReport:
        """校验项目是否允许导出"""
        project = settings.project_name
        report = ReadinessReport(project_name=project)

        items = self.registry.list_items(
            project,
            settings.finish_step_name,
            None if settings.include_all_finished else settings.close_step_name,
        )
        report.project_size = len(items)

        if report.project_size == 0:
            report.validation_error = EMPTY_PROJECT_MESSAGE.format(project=project)
            logger.info(report.validation_error)
            return report

        report.unfinished_count = self.registry.count_unfinished_items(
            project, settings.finish_step_name
        )
        report.size_message = PROJECT_SIZE_MESSAGE.format(size=report.project_size)

        if report.unfinished_count == 0:
            report.export_allowed = True
        else:
            report.validation_error = OPEN_STEPS_MESSAGE.format(
                project=project, count=report.unfinished_count
            )
            logger.info(report.validation_error)

        return report
