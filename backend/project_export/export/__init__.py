"""
导出模块 - 就绪校验、元数据提取、报表、图像落盘、步骤关闭

子模块：
- readiness: 就绪校验
- extractor: 元数据提取（映射表）
- authority: 出版者词表/权威库规范化
- report: 元数据报表（openpyxl 流式写入）
- materializer: 图像落盘
- transitioner: 步骤关闭（关闭策略）
"""

from .authority import MarcAuthorityClient, PublisherEnricher
from .extractor import ItemExtraction, MetadataExtractor
from .materializer import FileMaterializer
from .readiness import ReadinessReport, ReadinessValidator
from .report import ReportBuilder, read_report
from .transitioner import WorkflowTransitioner, should_close_steps

__all__ = [
    "MarcAuthorityClient",
    "PublisherEnricher",
    "ItemExtraction",
    "MetadataExtractor",
    "FileMaterializer",
    "ReadinessReport",
    "ReadinessValidator",
    "ReportBuilder",
    "read_report",
    "WorkflowTransitioner",
    "should_close_steps",
]
