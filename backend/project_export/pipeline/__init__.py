"""
流水线模块 - 导出编排与执行

子模块：
- stages: 导出状态机与阶段定义
- executor: Worker A 执行器
- job_manager: 任务管理
- packager: ZIP打包
- coordinator: 导出协调（同步/异步两种完成协议）
"""

from .coordinator import ExportCoordinator, ExportOutcome, ExportResult, ProjectSelection
from .executor import ExportExecutor
from .job_manager import JobManager
from .packager import Packager
from .stages import WORKER_STAGES, ExportState, PipelineStage

__all__ = [
    "ExportCoordinator",
    "ExportOutcome",
    "ExportResult",
    "ProjectSelection",
    "ExportExecutor",
    "JobManager",
    "Packager",
    "ExportState",
    "PipelineStage",
    "WORKER_STAGES",
]
