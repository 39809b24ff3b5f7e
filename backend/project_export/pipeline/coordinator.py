"""
导出协调器 - 组织一次项目导出的完整流程

职责：
1. 解析导出配置、执行就绪校验（未就绪时返回校验消息，不启动任务）
2. 删除上一次的导出树，启动 Worker A（提取/报表/复制/关闭步骤）
3. 同步模式（allowZipDownload=true）：调用方等待 Worker A 完成后内联打包到输出流
4. 异步模式（allowZipDownload=false）：启动 Worker B 等待 Worker A 后打包到文件，
   调用方立即返回"已开始"

前置条件：
    同一项目同一时间只允许一个导出任务，由调用方保证（本模块不加锁）。

测试要点：
- test_sync_export_streams_archive: 同步模式
- test_async_export_returns_started: 异步模式
- test_blocked_when_not_ready: 未就绪不启动
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from pydantic import BaseModel

from ..config import ExportPluginConfig, RuntimeConfig, get_config, load_export_config
from ..export import (
    FileMaterializer,
    MarcAuthorityClient,
    MetadataExtractor,
    PublisherEnricher,
    ReadinessReport,
    ReadinessValidator,
    WorkflowTransitioner,
)
from ..interfaces import (
    ArchiveError,
    ConfigurationMissingError,
    IAuthorityLookup,
    IDocumentStore,
    IItemRegistry,
    IVocabularyStore,
    IWorkflowService,
    ReadinessError,
)
from ..models import ExportJob, ExportSettings, Item
from .executor import ExportExecutor
from .job_manager import JobManager
from .packager import Packager
from .stages import WORKER_STAGES, ExportState

logger = logging.getLogger(__name__)

FINISHED_MESSAGE = "导出完成，归档已附上"
STARTED_MESSAGE = "导出已开始，可能需要较长时间，请在导出目录中查看结果"
FAILED_MESSAGE = "项目导出失败，详见应用日志"


class ExportOutcome(str, Enum):
    """调用方可见的结果"""
    FINISHED = "finished"  # 同步：导出完成，归档已附上
    STARTED = "started"    # 异步：导出已开始
    BLOCKED = "blocked"    # 配置缺失或项目未就绪
    FAILED = "failed"


class ProjectSelection(BaseModel):
    """选择项目后的校验结果"""
    project_name: str
    settings: ExportSettings | None = None
    readiness: ReadinessReport | None = None
    validation_error: str | None = None

    @property
    def export_allowed(self) -> bool:
        return self.readiness is not None and self.readiness.export_allowed

    def raise_for_status(self) -> None:
        """配置缺失或项目未就绪时抛出对应异常"""
        if self.settings is None:
            raise ConfigurationMissingError(
                self.validation_error or f"项目 '{self.project_name}' 没有匹配的导出配置"
            )
        self.readiness.raise_for_status()


@dataclass
class ExportResult:
    """导出触发结果"""
    outcome: ExportOutcome
    message: str
    job: ExportJob | None = None
    archive_path: Path | None = None
    future: Future | None = None  # 异步模式下 Worker B 的完成信号


class ExportCoordinator:
    """导出协调器"""

    def __init__(
        self,
        registry: IItemRegistry,
        documents: IDocumentStore,
        workflow: IWorkflowService,
        vocabulary: IVocabularyStore | None = None,
        authority: IAuthorityLookup | None = None,
        plugin_config: ExportPluginConfig | None = None,
        runtime: RuntimeConfig | None = None,
        job_manager: JobManager | None = None,
        packager: Packager | None = None,
    ):
        self.runtime = runtime or get_config()
        self._plugin_config = plugin_config
        self.registry = registry
        self.workflow = workflow
        self.job_manager = job_manager or JobManager(self.runtime)
        self.packager = packager or Packager(self.runtime.archive)
        self.validator = ReadinessValidator(registry)
        self.materializer = FileMaterializer()

        # 自行创建的权威库客户端由 close() 释放
        self._owned_authority: MarcAuthorityClient | None = None
        enricher = None
        if vocabulary is not None:
            if authority is None and self.runtime.authority.enabled:
                authority = self._owned_authority = MarcAuthorityClient(self.runtime.authority)
            enricher = PublisherEnricher(vocabulary, authority, self.runtime.authority)
        self.extractor = MetadataExtractor(
            documents,
            enricher=enricher,
            institution_label=self.runtime.report.institution_label,
        )

    @property
    def plugin_config(self) -> ExportPluginConfig:
        if self._plugin_config is None:
            self._plugin_config = load_export_config(self.runtime.plugin_config_path)
        return self._plugin_config

    def close(self) -> None:
        """释放自行创建的权威库客户端"""
        if self._owned_authority is not None:
            self._owned_authority.close()
            self._owned_authority = None

    # ------------------------------------------------------------------
    # 项目选择与校验
    # ------------------------------------------------------------------

    def select_project(
        self,
        project_name: str,
        include_all_finished: bool = False,
        export_directory: str | Path | None = None,
    ) -> ProjectSelection:
        """解析配置并执行就绪校验"""
        selection = ProjectSelection(project_name=project_name)
        try:
            selection.settings = self.plugin_config.build_settings(
                project_name,
                include_all_finished=include_all_finished,
                export_directory=export_directory,
            )
        except ConfigurationMissingError as e:
            logger.error(str(e))
            selection.validation_error = str(e)
            return selection

        selection.readiness = self.validator.validate(selection.settings)
        selection.validation_error = selection.readiness.validation_error
        return selection

    # ------------------------------------------------------------------
    # 导出
    # ------------------------------------------------------------------

    def prepare_export(
        self,
        project_name: str,
        sink: BinaryIO | None = None,
        include_all_finished: bool = False,
        export_directory: str | Path | None = None,
    ) -> ExportResult:
        """
        触发导出

        Args:
            project_name: 项目名
            sink: 同步模式下归档写入的输出流（None 时写入归档文件）
            include_all_finished: 是否包含关闭步骤已完成的条目
            export_directory: 覆盖配置中的导出目录

        Returns:
            导出结果（同步：已完成；异步：已开始；未就绪：校验消息）
        """
        selection = self.select_project(project_name, include_all_finished, export_directory)
        try:
            selection.raise_for_status()
        except (ConfigurationMissingError, ReadinessError) as e:
            return ExportResult(outcome=ExportOutcome.BLOCKED, message=str(e))

        settings = selection.settings
        items = self._list_items(settings)
        job = self.job_manager.create_job(settings)
        logger.info(f"[{job.job_id}] 开始导出项目 {project_name}（{len(items)} 个条目，{settings.mode.value}）")

        job.mark_running(ExportState.RESETTING.value)
        self.materializer.reset(settings)

        pool = ThreadPoolExecutor(
            max_workers=max(1, self.runtime.concurrency.max_workers),
            thread_name_prefix=f"project-export-{job.job_id[:8]}",
        )
        try:
            future_a = pool.submit(self._worker_a, job, items)
            if settings.allow_zip_download:
                return self._finish_inline(job, future_a, sink)

            future_b = pool.submit(self._worker_b, job, future_a)
            return ExportResult(
                outcome=ExportOutcome.STARTED,
                message=STARTED_MESSAGE,
                job=job,
                archive_path=settings.archive_path,
                future=future_b,
            )
        finally:
            pool.shutdown(wait=False)

    def _list_items(self, settings: ExportSettings) -> list[Item]:
        return self.registry.list_items(
            settings.project_name,
            settings.finish_step_name,
            None if settings.include_all_finished else settings.close_step_name,
        )

    def _worker_a(self, job: ExportJob, items: list[Item]) -> ExportJob:
        """Worker A：提取 + 报表 + 复制 + 关闭步骤"""
        executor = ExportExecutor(
            extractor=self.extractor,
            materializer=self.materializer,
            transitioner=WorkflowTransitioner(self.workflow),
            job_manager=self.job_manager,
            report_config=self.runtime.report,
        )
        project = self.registry.get_project(job.project_name)
        return executor.execute(job, items, project)

    def _finish_inline(self, job: ExportJob, future_a: Future, sink: BinaryIO | None) -> ExportResult:
        """同步模式：等待 Worker A，然后由调用方内联打包"""
        try:
            future_a.result()
        except Exception:
            logger.error(f"[{job.job_id}] 导出失败，不再打包")
            return ExportResult(outcome=ExportOutcome.FAILED, message=FAILED_MESSAGE, job=job)

        self._enter_packaging(job, ExportState.PACKAGING_INLINE)
        settings = job.settings
        try:
            if sink is None:
                archive_path = self.packager.package_to_file(settings, job)
            else:
                self.packager.write_archive(settings.export_root, sink)
                archive_path = None
        except ArchiveError as e:
            self._fail(job, e)
            raise

        self._done(job)
        return ExportResult(
            outcome=ExportOutcome.FINISHED,
            message=FINISHED_MESSAGE,
            job=job,
            archive_path=archive_path,
        )

    def _worker_b(self, job: ExportJob, future_a: Future) -> Path | None:
        """Worker B：等待 Worker A 完成后打包到文件"""
        try:
            future_a.result()
        except Exception:
            logger.error(f"[{job.job_id}] Worker A 失败，不再打包")
            return None

        self._enter_packaging(job, ExportState.PACKAGING_ASYNC)
        try:
            archive_path = self.packager.package_to_file(job.settings, job)
        except ArchiveError as e:
            self._fail(job, e)
            raise

        self._done(job)
        return archive_path

    def _enter_packaging(self, job: ExportJob, state: ExportState) -> None:
        stage = WORKER_STAGES[state]
        job.progress.stage = stage.name
        job.progress.percent = stage.progress_start
        job.progress.message = "打包中"
        logger.info(f"[{job.job_id}] 开始阶段: {stage.name}")
        self.job_manager.update_job(job)

    def _fail(self, job: ExportJob, error: Exception) -> None:
        logger.error(f"[{job.job_id}] 打包失败: {error}")
        job.progress.stage = ExportState.FAILED.value
        job.add_flag("打包失败")
        job.mark_failed(str(error))
        self.job_manager.update_job(job)

    def _done(self, job: ExportJob) -> None:
        job.progress.stage = ExportState.DONE.value
        job.progress.message = "导出结束"
        job.mark_finished()
        self.job_manager.update_job(job)
        logger.info(
            f"[{job.job_id}] 导出结束: {job.items_exported} 个条目, {job.rows_written} 行, "
            f"状态 {job.status.value}"
        )
