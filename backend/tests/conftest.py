"""
pytest 配置与公共 fixtures

使用方式：
    def test_something(settings, make_item):
        item = make_item("A", pages=3)
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from project_export.config import ExportPluginConfig, RuntimeConfig
from project_export.models import (
    DocStruct,
    Document,
    ExportSettings,
    Item,
    Metadata,
    Project,
    Property,
    Step,
    StepStatus,
)
from project_export.registry import (
    InMemoryDocumentStore,
    InMemoryItemRegistry,
    InMemoryWorkflowService,
)

PROJECT = "P"
FINISH_STEP = "Export to TECA"
CLOSE_STEP = "Close TECA export"


# ============================================================================
# 配置 Fixtures
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def export_dir(temp_dir: Path) -> Path:
    return temp_dir / "export"


@pytest.fixture
def runtime_config(temp_dir: Path) -> RuntimeConfig:
    """运行期配置（任务持久化到临时目录）"""
    return RuntimeConfig(storage_dir=temp_dir / "storage")


def _plugin_config(export_dir: Path, allow_zip_download: bool) -> ExportPluginConfig:
    return ExportPluginConfig(config=[
        {
            "project": "*",
            "step": "*",
            "finishedStepName": FINISH_STEP,
            "closeStepName": CLOSE_STEP,
            "allowZipDownload": allow_zip_download,
            "exportDirectory": str(export_dir),
        },
    ])


@pytest.fixture
def plugin_config(export_dir: Path) -> ExportPluginConfig:
    """同步模式配置（只有全通配条目）"""
    return _plugin_config(export_dir, allow_zip_download=True)


@pytest.fixture
def async_plugin_config(export_dir: Path) -> ExportPluginConfig:
    """异步模式配置"""
    return _plugin_config(export_dir, allow_zip_download=False)


@pytest.fixture
def settings(plugin_config: ExportPluginConfig) -> ExportSettings:
    return plugin_config.build_settings(PROJECT)


# ============================================================================
# 数据模型 Fixtures
# ============================================================================

@pytest.fixture
def project() -> Project:
    return Project(
        name=PROJECT,
        rights_owner="Biblioteca Estense",
        rights_owner_site="https://example.org/estense",
        rights_sponsor="Fondo Ebraico",
    )


@pytest.fixture
def make_item(temp_dir: Path) -> Callable[..., Item]:
    """条目工厂：创建 media 目录与若干图像文件"""
    counter = {"id": 0}

    def _make(
        title: str,
        pages: int = 3,
        finish_status: StepStatus = StepStatus.DONE,
        close_status: StepStatus = StepStatus.OPEN,
        project_name: str = PROJECT,
        properties: dict[str, str] | None = None,
    ) -> Item:
        counter["id"] += 1
        media = temp_dir / "metadata" / title / "images" / f"{title}_media"
        media.mkdir(parents=True, exist_ok=True)
        for page in range(1, pages + 1):
            (media / f"{title}_{page:03d}.jpg").write_bytes(f"{title}-{page}".encode())
        return Item(
            item_id=counter["id"],
            title=title,
            project_name=project_name,
            steps=[
                Step(title="Scanning", order=1, status=StepStatus.DONE),
                Step(title=FINISH_STEP, order=2, status=finish_status),
                Step(title=CLOSE_STEP, order=3, status=close_status),
            ],
            properties=[Property(title=k, value=v) for k, v in (properties or {}).items()],
            image_folders={"media": media},
        )

    return _make


def make_document(
    metadata: dict[str, str] | list[tuple[str, str]] | None = None,
    representative: str | None = None,
    publisher_authority: str | None = None,
) -> Document:
    """构造文档（logical 元数据 + physical 代表页）"""
    pairs = list(metadata.items()) if isinstance(metadata, dict) else list(metadata or [])
    logical_md = [
        Metadata(
            type_name=name,
            value=value,
            authority_value=publisher_authority if name == "Publisher" else None,
        )
        for name, value in pairs
    ]
    physical_md = []
    if representative is not None:
        physical_md.append(Metadata(type_name="_representative", value=representative))
    return Document(
        logical=DocStruct(type_name="Monograph", metadata=logical_md),
        physical=DocStruct(type_name="BoundBook", metadata=physical_md),
    )


@pytest.fixture
def document_factory() -> Callable[..., Document]:
    """文档工厂"""
    return make_document


@pytest.fixture
def sample_document() -> Document:
    return make_document(
        {
            "TitleDocMain": "ספר מעבר יבק",
            "OtherTitle": "Maʻavar Yaboḳ",
            "AuthorPreferred": "Aaron Berechiah ben Moses, of Modena",
            "PublicationYear": "1626",
            "PlaceOfPublication": "Mantova",
            "Publisher": "Perugia",
        },
        representative="2",
    )


# ============================================================================
# 外部协作方 Fixtures
# ============================================================================

@pytest.fixture
def registry(project: Project) -> InMemoryItemRegistry:
    return InMemoryItemRegistry(projects=[project])


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def workflow() -> InMemoryWorkflowService:
    return InMemoryWorkflowService()
