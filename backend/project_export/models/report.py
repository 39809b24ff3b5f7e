"""
报表行模型 - 元数据报表（metadata.xlsx）的固定32列

列顺序即表头顺序，由 REPORT_COLUMNS 唯一定义
"""

from __future__ import annotations

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from pydantic import BaseModel

# (字段名, 表头)，顺序即列顺序
REPORT_COLUMNS: list[tuple[str, str]] = [
    ("file_path", "File path"),
    ("shot_sequence", "Shots sequence"),
    ("prime_image_flag", "Prime Image Flag"),
    ("order", "Order"),
    ("identification", "Identification"),
    ("author_lat", "Author lat"),
    ("author_heb", "Author in Hebrew"),
    ("author_other", "Other Name Forms"),
    ("title_lat", "Litle lat"),
    ("title_heb", "Title heb"),
    ("nli_number", "NLI number"),
    ("oclc_number", "OCLC number"),
    ("notes_01", "Notes_01"),
    ("normalised_year", "Normalised Year"),
    ("normalised_city", "Normalised City"),
    ("city_other", "Reference forms of city."),
    ("normalised_publisher", "Normalised Publisher"),
    ("publisher_other", "Other name forms for the Publisher"),
    ("notes_02", "Notes_02"),
    ("nli_link", "Link 1 NLI catalog"),
    ("label_1", "Etichetta 1"),
    ("institution_site", "Link 2 website of keeping institution"),
    ("institution_name", "Etichetta 2 keeping institution"),
    ("fondo", "Fondo"),
    ("provenance", "Provenance"),
    ("marginalia", "Marginalia"),
    ("censorship", "Censorship"),
    ("additional_authors_lat", "Additional authors in Latin"),
    ("additional_authors_heb", "Additional authors in Hebrew"),
    ("additional_authors_other", "Additional authors references"),
    ("copies", "Number of copies"),
    ("shelfmark", "Segnatura"),
]

REPORT_HEADER: list[str] = [header for _, header in REPORT_COLUMNS]


class ReportRow(BaseModel):
    """单行（条目 × 页面）"""
    file_path: str
    shot_sequence: str
    prime_image_flag: str = "N"
    order: str = ""
    identification: str = ""
    author_lat: str = ""
    author_heb: str = ""
    author_other: str = ""
    title_lat: str = ""
    title_heb: str = ""
    nli_number: str = ""
    oclc_number: str = ""
    notes_01: str = ""
    normalised_year: str = ""
    normalised_city: str = ""
    city_other: str = ""
    normalised_publisher: str = ""
    publisher_other: str = ""
    notes_02: str = ""
    nli_link: str = ""
    label_1: str = ""
    institution_site: str = ""
    institution_name: str = ""
    fondo: str = ""
    provenance: str = ""
    marginalia: str = ""
    censorship: str = ""
    additional_authors_lat: str = ""
    additional_authors_heb: str = ""
    additional_authors_other: str = ""
    copies: str = ""
    shelfmark: str = ""

    def to_cells(self) -> list[str]:
        """按列顺序输出单元格值（去除 xlsx 不允许的控制字符）"""
        return [ILLEGAL_CHARACTERS_RE.sub("", getattr(self, name)) for name, _ in REPORT_COLUMNS]
