"""
元数据报表 - Excel文档生成（流式写入）

职责：
1. 创建单一工作表并写入固定32列表头
2. 按 条目→页面 顺序追加行（write-only 模式，不在内存中保留整表）
3. 写出 exportDirectory/projectName/metadata.xlsx

依赖：
- openpyxl: Excel操作（write_only 流式工作簿）

测试要点：
- test_header_schema: 表头与列顺序
- test_row_order: 行顺序
- test_round_trip: 回读行数与表头
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from openpyxl import Workbook, load_workbook

from ..config.runtime_config import ReportConfig
from ..interfaces import IReportBuilder, ReportWriteError
from ..models import REPORT_HEADER, ExportSettings, ReportRow

logger = logging.getLogger(__name__)


class ReportBuilder(IReportBuilder):
    """元数据报表构建器（一次任务一个实例）"""

    def __init__(self, config: ReportConfig | None = None):
        self.config = config or ReportConfig()
        self._wb = Workbook(write_only=True)
        self._ws = self._wb.create_sheet(self.config.sheet_name)
        self._ws.append(REPORT_HEADER)
        self.rows_written = 0
        self._finalized = False

    def append(self, rows: Iterable[ReportRow]) -> int:
        """追加行，返回本次追加的行数"""
        if self._finalized:
            raise ReportWriteError("报表已写出，不能继续追加")
        count = 0
        for row in rows:
            self._ws.append(row.to_cells())
            count += 1
        self.rows_written += count
        return count

    def report_path(self, settings: ExportSettings) -> Path:
        return settings.export_root / self.config.file_name

    def finalize(self, settings: ExportSettings) -> Path:
        """写出报表文件（自动创建目录）"""
        output_path = self.report_path(settings)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"写出元数据报表: {output_path}")
            self._wb.save(output_path)
        except OSError as e:
            raise ReportWriteError(f"报表写出失败: {output_path}: {e}") from e
        finally:
            self._finalized = True
        return output_path


def read_report(path: Path) -> tuple[list[str], list[list[str]]]:
    """回读报表：(表头, 数据行)"""
    wb = load_workbook(path)
    ws = wb.active
    rows = [["" if v is None else str(v) for v in row] for row in ws.iter_rows(values_only=True)]
    if not rows:
        return [], []
    return rows[0], rows[1:]
