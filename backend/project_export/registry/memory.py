"""
内存/文件适配器 - 外部协作方接口的本地实现

职责：
1. 条目登记：按项目/步骤状态查询（可从YAML清单加载）
2. 文档存储：读取条目的 JSON 结构化文档
3. 工作流：推进步骤状态
4. 词表：按 (词表ID, 记录ID) 查询

测试要点：
- test_list_items_filters: 列表过滤条件
- test_count_unfinished: 未完成计数
- test_advance_step_idempotent: 推进幂等
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..export.authority import VocabularyRecord
from ..interfaces import (
    DocumentReadError,
    IDocumentStore,
    IItemRegistry,
    IVocabularyStore,
    IWorkflowService,
)
from ..models import Document, Item, Project, Step, StepStatus


class InMemoryItemRegistry(IItemRegistry):
    """内存条目登记"""

    def __init__(
        self,
        items: list[Item] | None = None,
        projects: list[Project] | None = None,
    ):
        self._items: list[Item] = list(items or [])
        self._projects: dict[str, Project] = {p.name: p for p in projects or []}

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> InMemoryItemRegistry:
        """从YAML清单加载（相对路径基于清单所在目录）"""
        path = Path(yaml_path)
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        base_dir = path.parent
        projects = [Project(**p) for p in data.get("projects", [])]
        items = [Item(**cls._resolve_paths(raw, base_dir)) for raw in data.get("items", [])]
        return cls(items=items, projects=projects)

    @staticmethod
    def _resolve_paths(raw: dict[str, Any], base_dir: Path) -> dict[str, Any]:
        data = dict(raw)
        folders = data.get("image_folders") or {}
        data["image_folders"] = {name: base_dir / folder for name, folder in folders.items()}
        if data.get("metadata_file"):
            data["metadata_file"] = base_dir / data["metadata_file"]
        return data

    def add_item(self, item: Item) -> None:
        self._items.append(item)

    def add_project(self, project: Project) -> None:
        self._projects[project.name] = project

    def get_project(self, project_name: str) -> Project | None:
        return self._projects.get(project_name)

    def _project_items(self, project_name: str) -> list[Item]:
        return [i for i in self._items if i.project_name == project_name and not i.is_template]

    def count_unfinished_items(self, project_name: str, finish_step_name: str) -> int:
        return sum(
            1 for item in self._project_items(project_name)
            if not item.has_step(finish_step_name, StepStatus.DONE, StepStatus.DEACTIVATED)
        )

    def list_items(
        self,
        project_name: str,
        finish_step_name: str,
        close_step_name: str | None = None,
    ) -> list[Item]:
        items = [
            item for item in self._project_items(project_name)
            if item.has_step(finish_step_name, StepStatus.DONE)
        ]
        if close_step_name is not None:
            items = [
                item for item in items
                if not item.has_step(close_step_name, StepStatus.DONE, StepStatus.DEACTIVATED)
            ]
        return sorted(items, key=lambda i: i.title)


class JsonDocumentStore(IDocumentStore):
    """从条目的 metadata_file 读取 JSON 文档"""

    def read_document(self, item: Item) -> Document:
        if item.metadata_file is None:
            raise DocumentReadError(f"条目没有结构化文档: {item.title}")
        try:
            content = item.metadata_file.read_text(encoding="utf-8")
        except OSError as e:
            raise DocumentReadError(f"文档读取失败: {item.metadata_file}: {e}") from e
        try:
            return Document.model_validate_json(content)
        except ValidationError as e:
            raise DocumentReadError(f"文档格式错误: {item.metadata_file}: {e}") from e


class InMemoryDocumentStore(IDocumentStore):
    """内存文档存储（条目标题 → 文档）"""

    def __init__(self, documents: dict[str, Document] | None = None):
        self._documents = dict(documents or {})

    def put(self, item_title: str, document: Document) -> None:
        self._documents[item_title] = document

    def read_document(self, item: Item) -> Document:
        document = self._documents.get(item.title)
        if document is None:
            raise DocumentReadError(f"条目没有结构化文档: {item.title}")
        return document


class InMemoryWorkflowService(IWorkflowService):
    """内存工作流（直接修改步骤状态）"""

    def __init__(self):
        self._lock = threading.Lock()
        self.advanced: list[tuple[str, str]] = []

    def advance_step(self, item: Item, step: Step) -> bool:
        with self._lock:
            if step.status == StepStatus.DONE:
                return True
            if step.status == StepStatus.DEACTIVATED:
                return False
            step.status = StepStatus.DONE
            self.advanced.append((item.title, step.title))
            return True


class InMemoryVocabularyStore(IVocabularyStore):
    """内存词表"""

    def __init__(self, records: list[VocabularyRecord] | None = None):
        self._records = {(r.vocabulary_id, r.record_id): r for r in records or []}

    def get_record(self, vocabulary_id: int, record_id: int) -> VocabularyRecord | None:
        return self._records.get((vocabulary_id, record_id))
