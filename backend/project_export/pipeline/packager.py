"""
打包器 - 将导出树打包为ZIP

职责：
1. 深度优先递归遍历导出树，目录名+"/"作为子项前缀
2. 文件内容经固定大小缓冲区逐字节写入
3. 默认按名称排序遍历，保证归档可复现
4. 同步模式写入调用方的输出流；异步模式写入 exportDirectory/<项目名>.zip

测试要点：
- test_entry_names: 条目名为 / 连接的相对路径
- test_idempotent: 同一静态目录两次打包结果一致
- test_package_to_file: 覆盖旧归档
"""

from __future__ import annotations

import logging
import shutil
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

from ..config.runtime_config import ArchiveConfig
from ..interfaces import ArchiveError, IPackager

if TYPE_CHECKING:
    from ..models import ExportJob, ExportSettings

logger = logging.getLogger(__name__)

_COMPRESSION = {
    "deflated": zipfile.ZIP_DEFLATED,
    "stored": zipfile.ZIP_STORED,
}


class Packager(IPackager):
    """打包器实现"""

    def __init__(self, config: ArchiveConfig | None = None):
        self.config = config or ArchiveConfig()
        self._compression = _COMPRESSION.get(self.config.compression, zipfile.ZIP_DEFLATED)

    def write_archive(self, root: Path, sink: BinaryIO) -> int:
        """打包导出树到输出流"""
        if not root.is_dir():
            raise ArchiveError(f"导出目录不存在: {root}")
        try:
            with zipfile.ZipFile(sink, "w", self._compression) as zf:
                return self._zip_folder("", root, zf)
        except (OSError, zipfile.BadZipFile) as e:
            raise ArchiveError(f"打包失败: {root}: {e}") from e

    def _zip_folder(self, base: str, folder: Path, zf: zipfile.ZipFile) -> int:
        """递归写入目录，返回写入的文件数"""
        entries = list(folder.iterdir())
        if self.config.sort_entries:
            entries.sort(key=lambda p: p.name)

        count = 0
        for entry in entries:
            if entry.is_dir():
                count += self._zip_folder(f"{base}{entry.name}/", entry, zf)
            else:
                self._write_entry(f"{base}{entry.name}", entry, zf)
                count += 1
        return count

    def _write_entry(self, arcname: str, path: Path, zf: zipfile.ZipFile) -> None:
        zinfo = zipfile.ZipInfo.from_file(path, arcname)
        zinfo.compress_type = self._compression
        with open(path, "rb") as src, zf.open(zinfo, "w") as dst:
            shutil.copyfileobj(src, dst, self.config.buffer_size)

    def package_to_file(self, settings: ExportSettings, job: ExportJob | None = None) -> Path:
        """打包到 exportDirectory/<项目名>.zip（先删除旧归档）"""
        zip_path = settings.archive_path
        logger.info(f"生成项目归档: {zip_path}")
        try:
            if zip_path.exists():
                zip_path.unlink()
            zip_path.parent.mkdir(parents=True, exist_ok=True)
            with open(zip_path, "wb") as f:
                count = self.write_archive(settings.export_root, f)
        except ArchiveError:
            zip_path.unlink(missing_ok=True)
            raise
        except OSError as e:
            zip_path.unlink(missing_ok=True)
            raise ArchiveError(f"归档写出失败: {zip_path}: {e}") from e

        if job is not None:
            job.artifacts.archive_path = zip_path
        logger.info(f"归档完成: {zip_path}（{count} 个文件）")
        return zip_path
