"""
外部协作方适配层 - 条目登记/文档存储/工作流/词表
"""

from .memory import (
    InMemoryDocumentStore,
    InMemoryItemRegistry,
    InMemoryVocabularyStore,
    InMemoryWorkflowService,
    JsonDocumentStore,
)

__all__ = [
    "InMemoryDocumentStore",
    "InMemoryItemRegistry",
    "InMemoryVocabularyStore",
    "InMemoryWorkflowService",
    "JsonDocumentStore",
]
