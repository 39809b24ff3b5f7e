"""
流水线阶段定义 - 导出任务状态机

状态流转：
    IDLE → RESETTING → EXTRACTING → WRITING → TRANSITIONING
         → PACKAGING_INLINE | PACKAGING_ASYNC → DONE
    任一阶段不可恢复的失败 → FAILED

EXTRACTING 阶段内逐条目交替进行 提取 → 追加报表行 → 复制图像，
WRITING 阶段写出报表文件。
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ExportState(str, Enum):
    """导出状态枚举"""
    IDLE = "IDLE"
    RESETTING = "RESETTING"
    EXTRACTING = "EXTRACTING"
    WRITING = "WRITING"
    TRANSITIONING = "TRANSITIONING"
    PACKAGING_INLINE = "PACKAGING_INLINE"
    PACKAGING_ASYNC = "PACKAGING_ASYNC"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class PipelineStage:
    """流水线阶段"""
    state: ExportState
    progress_start: int  # 进度起点（0-100）
    progress_end: int    # 进度终点

    @property
    def name(self) -> str:
        return self.state.value

    def progress_at(self, done: int, total: int) -> int:
        """阶段内进度插值"""
        if total <= 0:
            return self.progress_start
        span = self.progress_end - self.progress_start
        return self.progress_start + int(span * min(done, total) / total)


# Worker A 各阶段配置
WORKER_STAGES: dict[ExportState, PipelineStage] = {
    ExportState.RESETTING: PipelineStage(ExportState.RESETTING, 0, 5),
    ExportState.EXTRACTING: PipelineStage(ExportState.EXTRACTING, 5, 80),
    ExportState.WRITING: PipelineStage(ExportState.WRITING, 80, 85),
    ExportState.TRANSITIONING: PipelineStage(ExportState.TRANSITIONING, 85, 90),
    ExportState.PACKAGING_INLINE: PipelineStage(ExportState.PACKAGING_INLINE, 90, 100),
    ExportState.PACKAGING_ASYNC: PipelineStage(ExportState.PACKAGING_ASYNC, 90, 100),
}
