"""
任务模型 - 定义导出任务状态与生命周期

ExportSettings: 每次触发导出时构造一次的不可变任务配置
ExportJob: 一次导出运行（一个项目）的状态、计数、产物与错误
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """任务状态枚举"""
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ExportMode(str, Enum):
    """完成协议：同步（调用方阻塞并内联打包）/ 异步（后台打包到文件）"""
    SYNC = "sync"
    ASYNC = "async"


class ExportSettings(BaseModel):
    """任务配置（不可变，显式传递给各组件）"""
    project_name: str
    finish_step_name: str
    close_step_name: str
    image_folder: str = "media"
    allow_zip_download: bool = True
    export_directory: Path
    include_all_finished: bool = False

    model_config = {"frozen": True}

    @property
    def export_root(self) -> Path:
        """导出树根目录：exportDirectory/projectName"""
        return self.export_directory / self.project_name

    @property
    def archive_path(self) -> Path:
        """异步模式下的归档文件（位于导出树之外）"""
        return self.export_directory / f"{self.project_name}.zip"

    @property
    def mode(self) -> ExportMode:
        return ExportMode.SYNC if self.allow_zip_download else ExportMode.ASYNC


class JobArtifacts(BaseModel):
    """任务产物路径"""
    export_root: Path | None = None
    report_path: Path | None = None
    archive_path: Path | None = None


class JobProgress(BaseModel):
    """任务进度"""
    stage: str = "IDLE"
    percent: int = 0
    current_item: str | None = None
    message: str = ""


class ExportJob(BaseModel):
    """导出任务实体"""
    job_id: str = Field(..., description="UUID")
    settings: ExportSettings

    # 状态
    status: JobStatus = JobStatus.QUEUED
    progress: JobProgress = Field(default_factory=JobProgress)

    # 计数
    items_total: int = 0
    items_exported: int = 0
    items_skipped: int = 0
    rows_written: int = 0

    # 因提取失败被排除（不复制、不关闭步骤）的条目
    excluded_items: list[str] = Field(default_factory=list)

    # 产物
    artifacts: JobArtifacts = Field(default_factory=JobArtifacts)

    # 结果
    flags: list[str] = Field(default_factory=list, description="告警标记")
    errors: list[str] = Field(default_factory=list, description="错误信息")

    # 时间戳
    created_at: datetime = Field(default_factory=datetime.now)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    model_config = {"arbitrary_types_allowed": True}

    @property
    def project_name(self) -> str:
        return self.settings.project_name

    @property
    def has_errors(self) -> bool:
        """任务级错误标记：任一条目/报表错误即置位"""
        return bool(self.errors)

    def mark_running(self, stage: str = "RESETTING") -> None:
        """标记为运行中"""
        self.status = JobStatus.RUNNING
        self.started_at = datetime.now()
        self.progress.stage = stage

    def mark_succeeded(self) -> None:
        """标记为成功"""
        self.status = JobStatus.SUCCEEDED
        self.finished_at = datetime.now()
        self.progress.percent = 100

    def mark_failed(self, error: str) -> None:
        """标记为失败"""
        self.status = JobStatus.FAILED
        self.finished_at = datetime.now()
        self.errors.append(error)

    def mark_finished(self) -> None:
        """任务结束：有错误记录则为失败，否则为成功"""
        if self.has_errors:
            self.status = JobStatus.FAILED
            self.finished_at = datetime.now()
        else:
            self.mark_succeeded()

    def record_error(self, flag: str, error: str) -> None:
        """记录错误（置位任务错误标记，不中断）"""
        self.add_flag(flag)
        self.errors.append(error)

    def add_flag(self, flag: str) -> None:
        """添加告警标记（不中断）"""
        if flag not in self.flags:
            self.flags.append(flag)
