"""
步骤关闭 - 导出成功后推进各条目的关闭步骤

职责：
1. 关闭策略：任务级错误标记置位时不关闭任何条目（全有或全无）
2. 对每个未因提取失败被排除的条目，推进第一个未完成/未停用的关闭步骤
3. 每个条目最多推进一个步骤

测试要点：
- test_close_first_open_step: 只推进第一个匹配步骤
- test_error_flag_blocks_all: 错误标记阻止所有关闭
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..interfaces import IWorkflowService
from ..models import ExportJob, ExportSettings, Item, Step, StepStatus

logger = logging.getLogger(__name__)


def should_close_steps(job: ExportJob) -> bool:
    """关闭策略：任一条目或报表出错则整个任务不关闭步骤"""
    return not job.has_errors


def find_close_step(item: Item, close_step_name: str) -> Step | None:
    """按步骤顺序找第一个既未完成也未停用的关闭步骤"""
    for step in item.find_steps(close_step_name):
        if step.status not in (StepStatus.DONE, StepStatus.DEACTIVATED):
            return step
    return None


class WorkflowTransitioner:
    """步骤关闭"""

    def __init__(self, workflow: IWorkflowService):
        self.workflow = workflow

    def close_items(
        self,
        items: Iterable[Item],
        settings: ExportSettings,
        job: ExportJob,
    ) -> int:
        """推进关闭步骤，返回成功推进的条目数"""
        if not should_close_steps(job):
            logger.warning(f"[{job.job_id}] 任务存在错误，不关闭任何步骤")
            return 0

        excluded = set(job.excluded_items)
        closed = 0
        for item in items:
            if item.title in excluded:
                continue
            step = find_close_step(item, settings.close_step_name)
            if step is None:
                continue
            if self.workflow.advance_step(item, step):
                closed += 1
            else:
                logger.error(f"[{job.job_id}] 步骤关闭失败: {item.title}: {step.title}")
                job.add_flag(f"步骤关闭失败:{item.title}")
        logger.info(f"[{job.job_id}] 已关闭 {closed} 个条目的步骤 '{settings.close_step_name}'")
        return closed
