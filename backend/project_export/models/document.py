"""
文档模型 - 条目的结构化书目与页面结构

逻辑结构：描述性元数据（可能有一层 anchor 分组）
物理结构：有序页面 + 代表页标记（_representative）
"""

from __future__ import annotations

from pydantic import BaseModel, Field

REPRESENTATIVE_TYPE = "_representative"


class Metadata(BaseModel):
    """单个元数据字段"""
    type_name: str
    value: str = ""
    authority_value: str | None = None  # 词表/权威记录URI


class DocStruct(BaseModel):
    """结构节点"""
    type_name: str
    is_anchor: bool = False
    metadata: list[Metadata] = Field(default_factory=list)
    children: list[DocStruct] = Field(default_factory=list)
    image_name: str | None = None  # 页面节点的文件名

    def get_value(self, type_name: str) -> str:
        """获取首个同名字段的值"""
        for md in self.metadata:
            if md.type_name == type_name:
                return md.value
        return ""


DocStruct.model_rebuild()


class Document(BaseModel):
    """结构化数字文档"""
    logical: DocStruct
    physical: DocStruct

    def descriptive_struct(self) -> DocStruct:
        """返回承载描述性元数据的逻辑节点（anchor 时取第一个子节点）"""
        if self.logical.is_anchor and self.logical.children:
            return self.logical.children[0]
        return self.logical

    @property
    def representative(self) -> str:
        """代表页序号（无标记时为空串）"""
        return self.physical.get_value(REPRESENTATIVE_TYPE)
