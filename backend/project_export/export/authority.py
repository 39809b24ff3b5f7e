"""
权威库查询 - 出版者名称规范化

职责：
1. 解析出版者字段的词表记录URI（.../records/<词表ID>/<记录ID>）
2. 从词表记录读取名称变体、Authority URI、Value URI
3. 若指向 VIAF，拉取 MARC21 记录，按库优先级选择交叉引用并二次拉取
4. 取 100$abc 作为规范名称，400$abc 作为其他名称形式

依赖：
- httpx: HTTP请求
- xml.etree.ElementTree: MARCXML解析

测试要点：
- test_parse_vocabulary_uri: 词表URI解析
- test_database_priority: 交叉引用优先级
- test_enrich_failure_isolated: 查询失败不影响条目
"""

from __future__ import annotations

import logging
import re
from xml.etree import ElementTree as ET

import httpx
from pydantic import BaseModel, Field

from ..config.runtime_config import AuthorityConfig
from ..interfaces import (
    AuthorityLookupError,
    IAuthorityLookup,
    IVocabularyStore,
)

logger = logging.getLogger(__name__)

NAME_VARIANTS_LABEL = "Name variants"
AUTHORITY_URI_LABEL = "Authority URI"
VALUE_URI_LABEL = "Value URI"

NAME_SUBFIELDS = ("a", "b", "c")

_CROSS_REF_PATTERN = re.compile(r"^\((?P<code>[^)]+)\)\s*(?P<id>.+)$")

# VIAF 源代码 → 库代码
_DATABASE_ALIASES = {
    "dnb": "gnd",
    "de-101": "gnd",
    "de-588": "gnd",
    "nli": "j9u",
}


class VocabularyRecord(BaseModel):
    """词表记录（字段标签 → 值）"""
    vocabulary_id: int
    record_id: int
    fields: dict[str, str] = Field(default_factory=dict)

    def get(self, label: str) -> str:
        return self.fields.get(label, "")


class DatabaseUrl(BaseModel):
    """权威记录的交叉引用"""
    database_code: str
    record_id: str
    marc_record_url: str


class AuthorityRecord(BaseModel):
    """权威记录摘要"""
    preferred_names: list[str] = Field(default_factory=list)  # 100$abc
    variant_names: list[str] = Field(default_factory=list)    # 400$abc
    database_urls: list[DatabaseUrl] = Field(default_factory=list)


class PublisherForms(BaseModel):
    """出版者规范化结果"""
    normalized: str
    other_forms: str = ""


def parse_vocabulary_uri(uri: str) -> tuple[int, int] | None:
    """解析 .../records/<词表ID>/<记录ID>，无法解析时返回 None"""
    parts = [p for p in uri.rstrip("/").split("/") if p]
    if len(parts) < 2:
        return None
    try:
        return int(parts[-2]), int(parts[-1])
    except ValueError:
        return None


def _local(tag: str) -> str:
    """去除命名空间"""
    return tag.rsplit("}", 1)[-1]


class MarcAuthorityClient(IAuthorityLookup):
    """MARC21/MARCXML 权威记录客户端"""

    def __init__(
        self,
        config: AuthorityConfig | None = None,
        client: httpx.Client | None = None,
    ):
        self.config = config or AuthorityConfig()
        self._client = client or httpx.Client(
            timeout=self.config.timeout_sec,
            follow_redirects=True,
        )

    def fetch_record(self, url: str) -> AuthorityRecord | None:
        """拉取并解析 MARCXML 记录"""
        try:
            response = self._client.get(url)
        except httpx.HTTPError as e:
            raise AuthorityLookupError(f"权威记录请求失败: {url}: {e}") from e

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise AuthorityLookupError(f"权威记录请求失败: {url}: HTTP {response.status_code}")

        return self.parse_marcxml(response.content)

    def parse_marcxml(self, content: bytes) -> AuthorityRecord | None:
        """解析 MARCXML（兼容 collection 包裹与命名空间前缀）"""
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise AuthorityLookupError(f"MARCXML解析失败: {e}") from e

        record = root if _local(root.tag) == "record" else next(
            (el for el in root.iter() if _local(el.tag) == "record"), None
        )
        if record is None:
            return None

        result = AuthorityRecord()
        for field in record:
            if _local(field.tag) != "datafield":
                continue
            tag = field.get("tag", "")
            subfields = [(sf.get("code", ""), (sf.text or "").strip()) for sf in field]

            if tag in ("100", "400"):
                value = " ".join(v for code, v in subfields if code in NAME_SUBFIELDS and v)
                if value:
                    target = result.preferred_names if tag == "100" else result.variant_names
                    target.append(value)
            elif tag.startswith("7"):
                for code, value in subfields:
                    if code == "0":
                        db_url = self._cross_reference(value)
                        if db_url:
                            result.database_urls.append(db_url)
        return result

    def _cross_reference(self, value: str) -> DatabaseUrl | None:
        """将 (CODE)id 映射为可拉取的 MARC 记录URL"""
        match = _CROSS_REF_PATTERN.match(value)
        if not match:
            return None
        code = match.group("code").strip().lower()
        code = _DATABASE_ALIASES.get(code, code)
        record_id = re.sub(r"\s+", "", match.group("id"))
        template = self.config.url_templates.get(code)
        if not template:
            return None
        return DatabaseUrl(
            database_code=code,
            record_id=record_id,
            marc_record_url=template.format(id=record_id),
        )

    def close(self) -> None:
        self._client.close()


def select_database_url(record: AuthorityRecord, priority: list[str]) -> DatabaseUrl | None:
    """按库优先级选择交叉引用，都没有时取第一个"""
    for database in priority:
        for db_url in record.database_urls:
            if db_url.database_code.lower() == database.lower():
                return db_url
    if record.database_urls:
        return record.database_urls[0]
    return None


class PublisherEnricher:
    """出版者名称规范化（词表 + 权威库）"""

    def __init__(
        self,
        vocabulary: IVocabularyStore | None,
        authority: IAuthorityLookup | None,
        config: AuthorityConfig | None = None,
    ):
        self.vocabulary = vocabulary
        self.authority = authority
        self.config = config or AuthorityConfig()

    def enrich(self, publisher: str, authority_value: str | None) -> PublisherForms:
        """
        规范化出版者名称

        任何失败只记录日志，返回当前已得到的结果。
        """
        forms = PublisherForms(normalized=publisher)
        if not authority_value or self.vocabulary is None:
            return forms

        try:
            return self._enrich(forms, authority_value)
        except Exception as e:
            logger.warning(f"出版者规范化失败: {authority_value}: {e}")
            return forms

    def _enrich(self, forms: PublisherForms, authority_value: str) -> PublisherForms:
        ids = parse_vocabulary_uri(authority_value)
        if ids is None:
            logger.warning(f"无法解析词表记录URI: {authority_value}")
            return forms

        record = self.vocabulary.get_record(*ids)
        if record is None:
            return forms

        forms.other_forms = record.get(NAME_VARIANTS_LABEL)

        url = record.get(AUTHORITY_URI_LABEL)
        value = record.get(VALUE_URI_LABEL)
        if not (self.config.enabled and self.authority and url and value and "viaf" in url):
            return forms

        try:
            cluster = self.authority.fetch_record(f"{url}{value}/marc21.xml")
        except AuthorityLookupError as e:
            logger.error(f"VIAF记录获取失败: {e}")
            return forms
        if cluster is None:
            return forms

        db_url = select_database_url(cluster, self.config.database_priority)
        if db_url is None:
            return forms

        detail = self.authority.fetch_record(db_url.marc_record_url)
        if detail is None:
            return forms

        if detail.preferred_names:
            forms.normalized = detail.preferred_names[0]
        if detail.variant_names:
            forms.other_forms = "; ".join(detail.variant_names)
        return forms
