"""
条目模型 - 项目/条目/工作流步骤

对应工作流数据库中的 项目 → 条目(process) → 步骤(step) 结构
"""

from __future__ import annotations

from enum import IntEnum
from pathlib import Path

from pydantic import BaseModel, Field

MEDIA_FOLDER = "media"


class StepStatus(IntEnum):
    """步骤状态（与工作流数据库中的编码一致）"""
    LOCKED = 0
    OPEN = 1
    INWORK = 2
    DONE = 3
    ERROR = 4
    DEACTIVATED = 5

    @property
    def is_closed(self) -> bool:
        """已完成或已停用都视为"已关闭" """
        return self in (StepStatus.DONE, StepStatus.DEACTIVATED)


class Step(BaseModel):
    """工作流步骤"""
    title: str
    order: int = 0
    status: StepStatus = StepStatus.LOCKED


class Property(BaseModel):
    """条目自由属性（键值对）"""
    title: str
    value: str = ""


class Project(BaseModel):
    """项目（一个机构一个项目）"""
    name: str
    rights_owner: str = ""       # 收藏机构名称
    rights_owner_site: str = ""  # 收藏机构网址
    rights_sponsor: str = ""     # 资助方/全宗


class Item(BaseModel):
    """数字化条目（如一本书）"""
    item_id: int
    title: str
    project_name: str
    is_template: bool = False

    steps: list[Step] = Field(default_factory=list)
    properties: list[Property] = Field(default_factory=list)

    # 图像目录：目录名 → 路径，"media" 为清单来源
    image_folders: dict[str, Path] = Field(default_factory=dict)

    # 结构化文档路径
    metadata_file: Path | None = None

    def get_image_folder(self, name: str = MEDIA_FOLDER) -> Path | None:
        """获取配置的图像目录"""
        return self.image_folders.get(name)

    def ordered_steps(self) -> list[Step]:
        """按顺序返回步骤"""
        return sorted(self.steps, key=lambda s: s.order)

    def find_steps(self, title: str) -> list[Step]:
        """按标题查找步骤（保持步骤顺序）"""
        return [s for s in self.ordered_steps() if s.title == title]

    def has_step(self, title: str, *statuses: StepStatus) -> bool:
        """是否存在指定标题且处于指定状态之一的步骤"""
        return any(s.status in statuses for s in self.find_steps(title))
