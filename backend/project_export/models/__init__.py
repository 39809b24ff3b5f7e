"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- Item/Step/Project: 项目条目与工作流步骤
- Document: 结构化书目与页面结构
- ExportSettings/ExportJob: 任务配置与生命周期
- ReportRow: 元数据报表行
"""

from .document import DocStruct, Document, Metadata
from .item import MEDIA_FOLDER, Item, Project, Property, Step, StepStatus
from .job import ExportJob, ExportMode, ExportSettings, JobArtifacts, JobStatus
from .report import REPORT_COLUMNS, REPORT_HEADER, ReportRow

__all__ = [
    "Item",
    "Project",
    "Property",
    "Step",
    "StepStatus",
    "MEDIA_FOLDER",
    "Document",
    "DocStruct",
    "Metadata",
    "ExportJob",
    "ExportMode",
    "ExportSettings",
    "JobArtifacts",
    "JobStatus",
    "ReportRow",
    "REPORT_COLUMNS",
    "REPORT_HEADER",
]
