"""
元数据提取单元测试

每个模块完成后必须运行：pytest backend/tests/unit/test_extractor.py -v
"""

from pathlib import Path

import pytest

from project_export.export import MetadataExtractor
from project_export.export.extractor import (
    ItemAttributes,
    apply_metadata,
    apply_properties,
    list_images,
)
from project_export.interfaces import DocumentReadError, ItemExtractionError
from project_export.models import REPORT_HEADER, StepStatus
from project_export.registry import JsonDocumentStore


def _cell(row, header: str) -> str:
    return row.to_cells()[REPORT_HEADER.index(header)]


class TestListImages:
    """图像清单测试"""

    def test_sorted_files_only(self, temp_dir: Path):
        (temp_dir / "b.jpg").write_bytes(b"b")
        (temp_dir / "a.jpg").write_bytes(b"a")
        (temp_dir / ".hidden").write_bytes(b"x")
        (temp_dir / "sub").mkdir()
        assert list_images(temp_dir) == ["a.jpg", "b.jpg"]

    def test_missing_folder(self, temp_dir: Path):
        assert list_images(temp_dir / "missing") == []
        assert list_images(None) == []

    def test_listing_failure(self, temp_dir: Path, monkeypatch):
        def denied(self):
            raise PermissionError("denied")

        monkeypatch.setattr(Path, "iterdir", denied)
        with pytest.raises(ItemExtractionError):
            list_images(temp_dir)


class TestFieldMapping:
    """映射表解析测试"""

    def test_properties(self, make_item):
        item = make_item("A", pages=1, properties={
            "Censorship": "yes",
            "Number of Copies": "2",
            "NLI_Number": "990012345",
            "Unrelated": "ignored",
        })
        attributes = ItemAttributes()
        apply_properties(item, attributes)
        assert attributes.censorship == "yes"
        assert attributes.copies == "2"
        assert attributes.identifier == "990012345"

    def test_later_metadata_overrides(self, document_factory):
        attributes = ItemAttributes()
        apply_metadata(document_factory([
            ("PublicationRun", "1600-1610"),
            ("PublicationYear", "1626"),
        ]), attributes)
        assert attributes.year == "1626"

    def test_additional_authors_joined(self, document_factory):
        attributes = ItemAttributes()
        apply_metadata(document_factory([
            ("AdditionalAuthor", "First"),
            ("AdditionalAuthor", "Second"),
            ("AdditionalAuthorHeb", "ראשון"),
        ]), attributes)
        assert attributes.additional_authors_lat == "First; Second"
        assert attributes.additional_authors_heb == "ראשון"
        assert attributes.additional_authors_other == ""

    def test_blank_shelfmark_keeps_default(self, document_factory):
        attributes = ItemAttributes(shelfmark="A")
        apply_metadata(document_factory({"shelfmarksource": "  "}), attributes)
        assert attributes.shelfmark == "A"

        apply_metadata(document_factory({"shelfmarksource": "Ms. 12"}), attributes)
        assert attributes.shelfmark == "Ms. 12"

    def test_normalised_city_fallback(self, document_factory):
        attributes = ItemAttributes()
        apply_metadata(document_factory({"PlaceOfPublication": "Mantova"}), attributes)
        assert attributes.normalised_city == "Mantova"

        apply_metadata(document_factory({"PlaceOfPublicationNormalized": "Mantua"}), attributes)
        assert attributes.normalised_city == "Mantua"


class TestMetadataExtractor:
    """提取器测试"""

    def test_rows_follow_listing(self, documents, settings, make_item, sample_document, project):
        item = make_item("A", pages=3)
        documents.put("A", sample_document)
        extraction = MetadataExtractor(documents).extract(item, settings, project)

        assert extraction.page_count == 3
        assert [r.shot_sequence for r in extraction.rows] == ["1", "2", "3"]
        assert [r.file_path for r in extraction.rows] == [
            "A/A_001.jpg", "A/A_002.jpg", "A/A_003.jpg",
        ]

    def test_representative_flag(self, documents, settings, make_item, sample_document):
        item = make_item("A", pages=3)
        documents.put("A", sample_document)
        rows = MetadataExtractor(documents).extract(item, settings).rows
        assert [r.prime_image_flag for r in rows] == ["N", "Y", "N"]

    def test_no_representative(self, documents, settings, make_item, document_factory):
        item = make_item("A", pages=2)
        documents.put("A", document_factory({"TitleDocMain": "t"}))
        rows = MetadataExtractor(documents).extract(item, settings).rows
        assert all(r.prime_image_flag == "N" for r in rows)

    def test_shared_columns(self, documents, settings, make_item, sample_document, project):
        item = make_item("A", pages=2, properties={"Provenance": "Estense"})
        documents.put("A", sample_document)
        rows = MetadataExtractor(documents, institution_label="label").extract(
            item, settings, project
        ).rows

        for row in rows:
            assert _cell(row, "Title heb") == "ספר מעבר יבק"
            assert _cell(row, "Litle lat") == "Maʻavar Yaboḳ"
            assert _cell(row, "Normalised Year") == "1626"
            assert _cell(row, "Normalised City") == "Mantova"
            assert _cell(row, "Normalised Publisher") == "Perugia"
            assert _cell(row, "Provenance") == "Estense"
            assert _cell(row, "Etichetta 1") == "label"
            assert _cell(row, "Etichetta 2 keeping institution") == "Biblioteca Estense"
            assert _cell(row, "Fondo") == "Fondo Ebraico"
            assert _cell(row, "Order") == "A"
            assert _cell(row, "Segnatura") == "A"

    def test_deactivated_item_skipped(self, documents, settings, make_item):
        item = make_item("B", finish_status=StepStatus.DEACTIVATED)
        assert MetadataExtractor(documents).extract(item, settings) is None

    def test_empty_item_skipped(self, documents, settings, make_item):
        item = make_item("E", pages=0)
        assert MetadataExtractor(documents).extract(item, settings) is None

    def test_missing_document(self, documents, settings, make_item):
        item = make_item("A", pages=1)
        with pytest.raises(ItemExtractionError):
            MetadataExtractor(documents).extract(item, settings)

    def test_malformed_document(self, settings, make_item, temp_dir: Path):
        item = make_item("A", pages=1)
        item.metadata_file = temp_dir / "meta.json"
        item.metadata_file.write_text("{not json", encoding="utf-8")
        with pytest.raises(DocumentReadError):
            MetadataExtractor(JsonDocumentStore()).extract(item, settings)

    def test_json_document(self, settings, make_item, sample_document, temp_dir: Path):
        item = make_item("A", pages=2)
        item.metadata_file = temp_dir / "meta.json"
        item.metadata_file.write_text(sample_document.model_dump_json(), encoding="utf-8")
        extraction = MetadataExtractor(JsonDocumentStore()).extract(item, settings)
        assert len(extraction.rows) == 2
        assert extraction.attributes.author_lat == "Aaron Berechiah ben Moses, of Modena"
