"""
模块接口契约 - 定义外部协作方与各模块的抽象接口

设计原则：
1. 模块间通过接口通信，不直接依赖具体实现
2. 每个接口定义清晰的输入输出类型
3. 便于单元测试和mock替换

使用方式：
    from project_export.interfaces import IItemRegistry

    class SqlItemRegistry(IItemRegistry):
        def count_unfinished_items(self, project_name: str, finish_step_name: str) -> int:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

if TYPE_CHECKING:
    from .export.authority import AuthorityRecord, VocabularyRecord
    from .models import Document, ExportJob, ExportSettings, Item, Project, Step


# ============================================================================
# 外部协作方接口
# ============================================================================

class IItemRegistry(ABC):
    """条目/项目登记接口（关系库之上的查询）"""

    @abstractmethod
    def get_project(self, project_name: str) -> Project | None:
        """获取项目记录（机构信息用于报表）"""
        ...

    @abstractmethod
    def count_unfinished_items(self, project_name: str, finish_step_name: str) -> int:
        """
        统计未达到完成步骤的条目数

        非模板条目中，不存在标题为 finish_step_name 且状态为
        已完成/已停用 的步骤者计入。
        """
        ...

    @abstractmethod
    def list_items(
        self,
        project_name: str,
        finish_step_name: str,
        close_step_name: str | None = None,
    ) -> list[Item]:
        """
        列出可导出的条目（按条目标题排序）

        Args:
            project_name: 项目名
            finish_step_name: 必须已完成的步骤
            close_step_name: 给定时排除该步骤已完成/已停用的条目

        Returns:
            条目列表
        """
        ...


class IDocumentStore(ABC):
    """结构化文档存储接口"""

    @abstractmethod
    def read_document(self, item: Item) -> Document:
        """
        读取条目的结构化文档

        Raises:
            DocumentReadError: 不可读或格式错误
        """
        ...


class IVocabularyStore(ABC):
    """受控词表接口（出版者等规范名称）"""

    @abstractmethod
    def get_record(self, vocabulary_id: int, record_id: int) -> VocabularyRecord | None:
        """获取词表记录"""
        ...


class IAuthorityLookup(ABC):
    """权威库查询接口（VIAF 等 MARC 记录）"""

    @abstractmethod
    def fetch_record(self, url: str) -> AuthorityRecord | None:
        """
        获取单条权威记录

        Raises:
            AuthorityLookupError: 请求或解析失败
        """
        ...


class IWorkflowService(ABC):
    """工作流步骤流转接口"""

    @abstractmethod
    def advance_step(self, item: Item, step: Step) -> bool:
        """将步骤推进到已完成（对已完成步骤为空操作）"""
        ...


# ============================================================================
# 导出模块接口
# ============================================================================

class IReportBuilder(ABC):
    """元数据报表接口"""

    @abstractmethod
    def finalize(self, settings: ExportSettings) -> Path:
        """写出报表文件"""
        ...


class IPackager(ABC):
    """打包器接口"""

    @abstractmethod
    def write_archive(self, root: Path, sink: BinaryIO) -> int:
        """
        将导出树递归写入ZIP流

        Args:
            root: 导出树根目录
            sink: 可写二进制流（文件或HTTP响应）

        Returns:
            写入的条目数
        """
        ...

    @abstractmethod
    def package_to_file(self, settings: ExportSettings, job: ExportJob | None = None) -> Path:
        """打包到 exportDirectory/<projectName>.zip"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class ProjectExportError(Exception):
    """基础异常"""
    pass


class ConfigurationMissingError(ProjectExportError):
    """没有匹配的导出配置（致命）"""
    pass


class ReadinessError(ProjectExportError):
    """项目未就绪（空项目或存在未完成条目）"""
    pass


class ItemExtractionError(ProjectExportError):
    """单条目元数据提取失败"""
    pass


class DocumentReadError(ItemExtractionError):
    """结构化文档不可读或格式错误"""
    pass


class ItemCopyError(ProjectExportError):
    """单条目图像复制失败"""
    pass


class ReportWriteError(ProjectExportError):
    """报表写出失败"""
    pass


class ArchiveError(ProjectExportError):
    """打包/传输失败"""
    pass


class AuthorityLookupError(ProjectExportError):
    """权威库查询失败"""
    pass
