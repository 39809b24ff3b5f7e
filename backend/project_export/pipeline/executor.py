"""
流水线执行器 - Worker A（提取 + 报表 + 复制 + 关闭步骤）

职责：
1. 逐条目执行：提取元数据 → 追加报表行 → 复制图像（完成后再处理下一条目）
2. 写出元数据报表
3. 按关闭策略推进关闭步骤
4. 单条目失败隔离，聚合为任务级错误标记

测试要点：
- test_item_failure_isolation: 单条目失败不影响其他条目
- test_error_flag_blocks_transition: 错误标记阻止关闭步骤
- test_rows_match_pages: 报表行数等于各条目页数之和
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from ..config.runtime_config import ReportConfig
from ..export import (
    FileMaterializer,
    MetadataExtractor,
    ReportBuilder,
    WorkflowTransitioner,
)
from ..interfaces import ItemCopyError, ItemExtractionError, ReportWriteError
from .stages import WORKER_STAGES, ExportState

if TYPE_CHECKING:
    from ..models import ExportJob, Item, Project
    from .job_manager import JobManager

logger = logging.getLogger(__name__)


class ExportExecutor:
    """导出执行器（Worker A 主体）"""

    def __init__(
        self,
        extractor: MetadataExtractor,
        materializer: FileMaterializer,
        transitioner: WorkflowTransitioner,
        job_manager: JobManager | None = None,
        report_config: ReportConfig | None = None,
    ):
        self.extractor = extractor
        self.materializer = materializer
        self.transitioner = transitioner
        self.job_manager = job_manager
        self.report_config = report_config or ReportConfig()
        self._last_progress_write = 0.0
        self._progress_interval_sec = 2.0

    def execute(self, job: ExportJob, items: list[Item], project: Project | None = None) -> ExportJob:
        """执行 Worker A，返回任务"""
        job.items_total = len(items)
        try:
            report = ReportBuilder(self.report_config)
            self._stage_extract(job, items, project, report)
            self._stage_write(job, report)
            self._stage_transition(job, items)
        except Exception as e:
            logger.exception(f"导出执行失败: {job.job_id}")
            job.progress.stage = ExportState.FAILED.value
            job.mark_failed(str(e))
            self._update_progress(job, message=f"任务失败: {e}", force=True)
            raise

        self._update_progress(job, message="元数据与图像导出完成", force=True)
        return job

    def _enter(self, job: ExportJob, state: ExportState) -> None:
        stage = WORKER_STAGES[state]
        job.progress.stage = stage.name
        job.progress.percent = stage.progress_start
        logger.info(f"[{job.job_id}] 开始阶段: {stage.name}")
        self._update_progress(job, message=f"开始阶段: {stage.name}", force=True)

    def _stage_extract(
        self,
        job: ExportJob,
        items: list[Item],
        project: Project | None,
        report: ReportBuilder,
    ) -> None:
        """逐条目：提取 → 追加报表行 → 复制图像"""
        self._enter(job, ExportState.EXTRACTING)
        settings = job.settings
        stage = WORKER_STAGES[ExportState.EXTRACTING]
        total = len(items)

        for index, item in enumerate(items, start=1):
            job.progress.percent = stage.progress_at(index - 1, total)
            self._update_progress(
                job,
                current_item=item.title,
                message=f"处理条目 ({index}/{total})",
            )

            try:
                extraction = self.extractor.extract(item, settings, project)
            except ItemExtractionError as e:
                logger.error(f"[{job.job_id}] 元数据提取失败: {item.title}: {e}")
                job.excluded_items.append(item.title)
                job.record_error(f"提取失败:{item.title}", str(e))
                continue

            if extraction is None:
                job.items_skipped += 1
                continue

            job.rows_written += report.append(extraction.rows)

            try:
                self.materializer.copy_item(item, settings)
            except ItemCopyError as e:
                logger.error(f"[{job.job_id}] 图像复制失败: {item.title}: {e}")
                job.record_error(f"复制失败:{item.title}", str(e))
                continue

            job.items_exported += 1

    def _stage_write(self, job: ExportJob, report: ReportBuilder) -> None:
        """写出元数据报表"""
        self._enter(job, ExportState.WRITING)
        try:
            job.artifacts.report_path = report.finalize(job.settings)
        except ReportWriteError as e:
            logger.error(f"[{job.job_id}] {e}")
            job.record_error("报表写出失败", str(e))

    def _stage_transition(self, job: ExportJob, items: list[Item]) -> None:
        """按关闭策略推进关闭步骤"""
        self._enter(job, ExportState.TRANSITIONING)
        self.transitioner.close_items(items, job.settings, job)

    def _update_progress(
        self,
        job: ExportJob,
        *,
        message: str | None = None,
        current_item: str | None = None,
        force: bool = False,
    ) -> None:
        if message is not None:
            job.progress.message = message
        if current_item is not None:
            job.progress.current_item = current_item
        if self.job_manager is None:
            return
        now = time.time()
        if force or (now - self._last_progress_write) >= self._progress_interval_sec:
            self.job_manager.persist(job)
            self._last_progress_write = now
