"""
元数据报表单元测试
"""

import pytest
from openpyxl import load_workbook

from project_export.config.runtime_config import ReportConfig
from project_export.export import ReportBuilder, read_report
from project_export.interfaces import ReportWriteError
from project_export.models import REPORT_HEADER, ReportRow


def _rows(title: str, pages: int) -> list[ReportRow]:
    return [
        ReportRow(file_path=f"{title}/{page}.jpg", shot_sequence=str(page), shelfmark=title)
        for page in range(1, pages + 1)
    ]


class TestReportBuilder:
    """报表构建测试"""

    def test_header_schema(self, settings):
        builder = ReportBuilder()
        path = builder.finalize(settings)
        header, rows = read_report(path)
        assert header == REPORT_HEADER
        assert rows == []

    def test_round_trip(self, settings):
        builder = ReportBuilder()
        assert builder.append(_rows("A", 3)) == 3
        assert builder.append(_rows("C", 2)) == 2
        path = builder.finalize(settings)

        assert path == settings.export_root / "metadata.xlsx"
        header, rows = read_report(path)
        assert len(header) == 32
        assert builder.rows_written == 5
        assert [r[0] for r in rows] == ["A/1.jpg", "A/2.jpg", "A/3.jpg", "C/1.jpg", "C/2.jpg"]
        assert all(r[-1] in ("A", "C") for r in rows)

    def test_sheet_name(self, settings):
        builder = ReportBuilder(ReportConfig(sheet_name="images"))
        path = builder.finalize(settings)
        assert load_workbook(path).sheetnames == ["images"]

    def test_append_after_finalize(self, settings):
        builder = ReportBuilder()
        builder.finalize(settings)
        with pytest.raises(ReportWriteError):
            builder.append(_rows("A", 1))

    def test_unwritable_target(self, settings):
        settings.export_directory.mkdir(parents=True)
        # 用同名文件占住导出树根目录
        settings.export_root.write_bytes(b"")
        with pytest.raises(ReportWriteError):
            ReportBuilder().finalize(settings)
