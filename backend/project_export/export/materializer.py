"""
图像落盘 - 复制条目图像到导出树

职责：
1. 导出前删除该项目上一次的导出树（幂等）
2. 复制条目配置的图像目录到 exportDirectory/projectName/<条目标题>/
3. 单条目复制要么完整要么不留痕迹（先写临时目录再改名）

测试要点：
- test_reset_removes_previous_tree: 重置
- test_copy_item: 复制
- test_copy_failure_leaves_nothing: 失败不留半成品
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..interfaces import ItemCopyError
from ..models import ExportSettings, Item

logger = logging.getLogger(__name__)

STAGING_SUFFIX = ".partial"


class FileMaterializer:
    """图像落盘"""

    def reset(self, settings: ExportSettings) -> None:
        """删除上一次的导出树"""
        target = settings.export_root
        if not target.exists():
            return
        logger.info(f"删除上一次的导出结果: {target}")
        try:
            shutil.rmtree(target)
        except OSError as e:
            logger.error(f"删除上一次的导出结果失败: {target}: {e}")

    def target_dir(self, item: Item, settings: ExportSettings) -> Path:
        return settings.export_root / item.title

    def copy_item(self, item: Item, settings: ExportSettings) -> Path:
        """复制条目图像目录，返回目标目录"""
        source = item.get_image_folder(settings.image_folder)
        if source is None or not source.is_dir():
            raise ItemCopyError(f"图像目录不存在: {item.title}: {settings.image_folder}")

        target = self.target_dir(item, settings)
        staging = target.with_name(target.name + STAGING_SUFFIX)
        try:
            if staging.exists():
                shutil.rmtree(staging)
            shutil.copytree(source, staging)
            if target.exists():
                # 合并到已存在的目标目录
                shutil.copytree(staging, target, dirs_exist_ok=True)
                shutil.rmtree(staging)
            else:
                staging.rename(target)
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise ItemCopyError(f"图像复制失败: {item.title}: {e}") from e

        logger.debug(f"图像已复制: {source} -> {target}")
        return target
