"""
元数据提取器 - 每个条目生成报表行

职责：
1. 完成步骤已停用的条目静默跳过
2. 图像清单为空的条目跳过（不复制）
3. 条目属性、逻辑结构元数据按映射表一次遍历解析
4. 出版者字段可选地经词表/权威库规范化
5. 按图像清单逐页生成报表行（序号为清单中的位置，从1开始）

测试要点：
- test_rows_follow_listing: 行数与清单一致，序号1..P
- test_representative_flag: 代表页标记
- test_field_mapping: 映射表解析
- test_deactivated_item_skipped: 停用条目跳过
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from ..interfaces import IDocumentStore, ItemExtractionError
from ..models import (
    MEDIA_FOLDER,
    Document,
    ExportSettings,
    Item,
    Project,
    ReportRow,
    StepStatus,
)
from .authority import PublisherEnricher

logger = logging.getLogger(__name__)

ADDITIONAL_AUTHOR_SEPARATOR = "; "

# 条目属性标题 → 属性字段
PROPERTY_FIELDS: dict[str, str] = {
    "Censorship": "censorship",
    "Marginalia": "marginalia",
    "Provenance": "provenance",
    "Number of Copies": "copies",
    "NLI_Number": "identifier",
}

# 逻辑结构元数据类型 → 属性字段（后出现者覆盖）
METADATA_FIELDS: dict[str, str] = {
    "TitleDocMain": "title",
    "OtherTitle": "title_lat",
    "OclcID": "oclc_identifier",
    "Notes01": "notes_01",
    "Notes02": "notes_02",
    "shelfmarksource": "shelfmark",
    "AuthorPreferred": "author_lat",
    "AuthorPreferredHeb": "author_heb",
    "AuthorPreferredOther": "author_other",
    "PublicationRun": "year",
    "PublicationYear": "year",
    "PlaceOfPublicationNormalized": "city_normed",
    "PlaceOfPublication": "city",
    "PlaceOfPublicationOther": "city_other",
    "Publisher": "publisher",
    "NLICatalog": "nli_link",
}

# 多值字段，按出现顺序以 "; " 连接
ACCUMULATED_FIELDS: dict[str, str] = {
    "AdditionalAuthor": "additional_authors_lat",
    "AdditionalAuthorHeb": "additional_authors_heb",
    "AdditionalAuthorOther": "additional_authors_other",
}

# 空值不覆盖默认值的字段
NON_BLANK_FIELDS = frozenset({"shelfmarksource"})

PUBLISHER_TYPE = "Publisher"


class ItemAttributes(BaseModel):
    """条目级共享属性"""
    # 条目属性
    censorship: str = ""
    marginalia: str = ""
    provenance: str = ""
    copies: str = ""
    identifier: str = ""

    # 逻辑结构元数据
    title: str = ""
    title_lat: str = ""
    oclc_identifier: str = ""
    notes_01: str = ""
    notes_02: str = ""
    shelfmark: str = ""
    author_lat: str = ""
    author_heb: str = ""
    author_other: str = ""
    year: str = ""
    city_normed: str = ""
    city: str = ""
    city_other: str = ""
    publisher: str = ""
    publisher_other: str = ""
    publisher_authority: str | None = None
    nli_link: str = ""
    additional_authors_lat: str = ""
    additional_authors_heb: str = ""
    additional_authors_other: str = ""

    @property
    def normalised_city(self) -> str:
        return self.city_normed or self.city


class ItemExtraction(BaseModel):
    """单条目提取结果"""
    item_title: str
    attributes: ItemAttributes
    image_names: list[str] = Field(default_factory=list)
    rows: list[ReportRow] = Field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.image_names)


def apply_properties(item: Item, attributes: ItemAttributes) -> None:
    """按 PROPERTY_FIELDS 一次遍历条目属性"""
    for prop in item.properties:
        field = PROPERTY_FIELDS.get(prop.title)
        if field:
            setattr(attributes, field, prop.value)


def apply_metadata(document: Document, attributes: ItemAttributes) -> None:
    """按映射表一次遍历逻辑结构元数据"""
    accumulated: dict[str, list[str]] = {field: [] for field in ACCUMULATED_FIELDS.values()}

    for md in document.descriptive_struct().metadata:
        if md.type_name in ACCUMULATED_FIELDS:
            accumulated[ACCUMULATED_FIELDS[md.type_name]].append(md.value)
            continue

        field = METADATA_FIELDS.get(md.type_name)
        if not field:
            continue
        if md.type_name in NON_BLANK_FIELDS and not md.value.strip():
            continue
        setattr(attributes, field, md.value)
        if md.type_name == PUBLISHER_TYPE:
            attributes.publisher_authority = md.authority_value

    for field, values in accumulated.items():
        setattr(attributes, field, ADDITIONAL_AUTHOR_SEPARATOR.join(values))


def list_images(folder: Path | None) -> list[str]:
    """列出图像目录下的文件名（按名称排序，目录缺失视为空）"""
    if folder is None or not folder.is_dir():
        return []
    try:
        return sorted(
            p.name for p in folder.iterdir()
            if p.is_file() and not p.name.startswith(".")
        )
    except OSError as e:
        raise ItemExtractionError(f"图像目录读取失败: {folder}: {e}") from e


def is_deactivated(item: Item, finish_step_name: str) -> bool:
    """完成步骤是否已停用"""
    return item.has_step(finish_step_name, StepStatus.DEACTIVATED)


class MetadataExtractor:
    """元数据提取器"""

    def __init__(
        self,
        documents: IDocumentStore,
        enricher: PublisherEnricher | None = None,
        institution_label: str = "National Library of Israel record",
    ):
        self.documents = documents
        self.enricher = enricher
        self.institution_label = institution_label

    def extract(
        self,
        item: Item,
        settings: ExportSettings,
        project: Project | None = None,
    ) -> ItemExtraction | None:
        """
        提取单个条目

        Returns:
            提取结果；条目被跳过时返回 None

        Raises:
            ItemExtractionError: 文档不可读或格式错误
        """
        if is_deactivated(item, settings.finish_step_name):
            logger.info(f"条目已停用，跳过: {item.title}")
            return None

        image_names = list_images(item.get_image_folder(MEDIA_FOLDER))
        if not image_names:
            logger.info(f"条目没有图像，跳过: {item.title}")
            return None

        logger.info(f"收集条目元数据: {item.title}")
        document = self._read_document(item)

        attributes = ItemAttributes(shelfmark=item.title)
        apply_properties(item, attributes)
        apply_metadata(document, attributes)

        if self.enricher and attributes.publisher:
            forms = self.enricher.enrich(attributes.publisher, attributes.publisher_authority)
            attributes.publisher = forms.normalized
            if forms.other_forms:
                attributes.publisher_other = forms.other_forms

        rows = self.build_rows(item, attributes, image_names, document.representative, project)
        return ItemExtraction(
            item_title=item.title,
            attributes=attributes,
            image_names=image_names,
            rows=rows,
        )

    def _read_document(self, item: Item) -> Document:
        try:
            return self.documents.read_document(item)
        except ItemExtractionError:
            raise
        except Exception as e:
            raise ItemExtractionError(f"文档读取失败: {item.title}: {e}") from e

    def build_rows(
        self,
        item: Item,
        attributes: ItemAttributes,
        image_names: list[str],
        representative: str,
        project: Project | None = None,
    ) -> list[ReportRow]:
        """逐页生成报表行"""
        project = project or Project(name=item.project_name)
        rows = []
        for index, image_name in enumerate(image_names, start=1):
            sequence = str(index)
            rows.append(ReportRow(
                file_path=f"{item.title}/{image_name}",
                shot_sequence=sequence,
                prime_image_flag="Y" if representative and representative == sequence else "N",
                order=item.title,
                identification=item.title,
                author_lat=attributes.author_lat,
                author_heb=attributes.author_heb,
                author_other=attributes.author_other,
                title_lat=attributes.title_lat,
                title_heb=attributes.title,
                nli_number=attributes.identifier,
                oclc_number=attributes.oclc_identifier,
                notes_01=attributes.notes_01,
                normalised_year=attributes.year,
                normalised_city=attributes.normalised_city,
                city_other=attributes.city_other,
                normalised_publisher=attributes.publisher,
                publisher_other=attributes.publisher_other,
                notes_02=attributes.notes_02,
                nli_link=attributes.nli_link,
                label_1=self.institution_label,
                institution_site=project.rights_owner_site,
                institution_name=project.rights_owner,
                fondo=project.rights_sponsor,
                provenance=attributes.provenance,
                marginalia=attributes.marginalia,
                censorship=attributes.censorship,
                additional_authors_lat=attributes.additional_authors_lat,
                additional_authors_heb=attributes.additional_authors_heb,
                additional_authors_other=attributes.additional_authors_other,
                copies=attributes.copies,
                shelfmark=attributes.shelfmark,
            ))
        return rows
