"""
任务管理器 - 导出任务创建/查询/更新

职责：
1. 创建任务并分配ID
2. 任务状态持久化（storage/jobs/<job_id>/job.json）
3. 任务查询

测试要点：
- test_create_job: 创建任务
- test_get_job: 获取任务（缓存/磁盘）
- test_update_job: 更新任务
"""

from __future__ import annotations

import json
import logging
import threading
import uuid

from pydantic import ValidationError

from ..config import RuntimeConfig, get_config
from ..models import ExportJob, ExportSettings, JobStatus

logger = logging.getLogger(__name__)


class JobManager:
    """任务管理器实现"""

    def __init__(self, config: RuntimeConfig | None = None):
        self.config = config or get_config()
        self.config.ensure_dirs()
        self._jobs: dict[str, ExportJob] = {}  # 内存缓存
        self._lock = threading.Lock()

    def create_job(self, settings: ExportSettings) -> ExportJob:
        """创建任务"""
        job = ExportJob(job_id=str(uuid.uuid4()), settings=settings)
        job.artifacts.export_root = settings.export_root

        with self._lock:
            self._jobs[job.job_id] = job
        self.persist(job)
        return job

    def get_job(self, job_id: str) -> ExportJob | None:
        """获取任务"""
        with self._lock:
            if job_id in self._jobs:
                return self._jobs[job_id]

        job = self._load_job(job_id)
        if job:
            with self._lock:
                self._jobs[job_id] = job
        return job

    def update_job(self, job: ExportJob) -> None:
        """更新任务状态"""
        with self._lock:
            self._jobs[job.job_id] = job
        self.persist(job)

    def list_jobs(
        self,
        status: JobStatus | None = None,
        project_name: str | None = None,
        limit: int = 100,
    ) -> list[ExportJob]:
        """列出任务"""
        with self._lock:
            jobs = list(self._jobs.values())

        if status:
            jobs = [j for j in jobs if j.status == status]
        if project_name:
            jobs = [j for j in jobs if j.project_name == project_name]

        # 按创建时间降序
        jobs.sort(key=lambda j: j.created_at, reverse=True)

        return jobs[:limit]

    def persist(self, job: ExportJob) -> None:
        """持久化任务"""
        job_dir = self.config.get_job_dir(job.job_id)
        try:
            job_dir.mkdir(parents=True, exist_ok=True)
            job_file = job_dir / "job.json"
            with open(job_file, "w", encoding="utf-8") as f:
                json.dump(job.model_dump(mode="json"), f, ensure_ascii=False, indent=2, default=str)
        except OSError as e:
            logger.warning(f"任务持久化失败: {job.job_id}: {e}")

    def _load_job(self, job_id: str) -> ExportJob | None:
        """从磁盘加载任务"""
        job_file = self.config.get_job_dir(job_id) / "job.json"

        if not job_file.exists():
            return None

        try:
            with open(job_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            return ExportJob(**data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"任务加载失败: {job_id}: {e}")
            return None
