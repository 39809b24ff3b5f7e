"""
流水线执行器单元测试（Worker A）
"""

from pathlib import Path

import pytest

from project_export.export import (
    FileMaterializer,
    MetadataExtractor,
    WorkflowTransitioner,
    read_report,
)
from project_export.models import REPORT_HEADER, JobStatus, StepStatus
from project_export.pipeline import ExportExecutor, JobManager
from project_export.pipeline.stages import WORKER_STAGES, ExportState

CLOSE = "Close TECA export"


@pytest.fixture
def job_manager(runtime_config) -> JobManager:
    return JobManager(runtime_config)


@pytest.fixture
def executor(documents, workflow, job_manager) -> ExportExecutor:
    return ExportExecutor(
        extractor=MetadataExtractor(documents),
        materializer=FileMaterializer(),
        transitioner=WorkflowTransitioner(workflow),
        job_manager=job_manager,
    )


class TestExportExecutor:
    """Worker A 测试"""

    def test_rows_match_pages(self, executor, job_manager, documents, workflow,
                              settings, make_item, sample_document, project):
        items = [make_item("A", pages=3), make_item("C", pages=2)]
        for item in items:
            documents.put(item.title, sample_document)

        job = job_manager.create_job(settings)
        executor.execute(job, items, project)

        assert job.rows_written == 5
        assert job.items_exported == 2
        assert not job.has_errors
        header, rows = read_report(job.artifacts.report_path)
        assert len(rows) == 5
        assert [r[0] for r in rows][:3] == ["A/A_001.jpg", "A/A_002.jpg", "A/A_003.jpg"]
        assert (settings.export_root / "C" / "C_002.jpg").exists()
        assert sorted(workflow.advanced) == [("A", CLOSE), ("C", CLOSE)]
        assert job.progress.stage == ExportState.TRANSITIONING.value

    def test_item_failure_isolation(self, executor, job_manager, documents, workflow,
                                    settings, make_item, sample_document):
        items = [make_item("A", pages=2), make_item("B", pages=2), make_item("C", pages=1)]
        documents.put("A", sample_document)
        documents.put("C", sample_document)

        job = job_manager.create_job(settings)
        executor.execute(job, items)

        assert job.rows_written == 3
        assert job.excluded_items == ["B"]
        assert job.has_errors
        assert "提取失败:B" in job.flags
        assert (settings.export_root / "A").is_dir()
        assert (settings.export_root / "C").is_dir()
        assert not (settings.export_root / "B").exists()

    def test_error_flag_blocks_transition(self, executor, job_manager, documents, workflow,
                                          settings, make_item, sample_document):
        items = [make_item("A", pages=1), make_item("B", pages=1)]
        documents.put("A", sample_document)

        job = job_manager.create_job(settings)
        executor.execute(job, items)

        assert workflow.advanced == []
        assert all(i.has_step(CLOSE, StepStatus.OPEN) for i in items)

    def test_copy_failure_flags_job(self, executor, job_manager, documents, workflow,
                                    settings, make_item, sample_document):
        item = make_item("A", pages=1)
        documents.put("A", sample_document)
        settings = settings.model_copy(update={"image_folder": "master"})

        job = job_manager.create_job(settings)
        executor.execute(job, [item])

        assert job.rows_written == 1
        assert "复制失败:A" in job.flags
        assert workflow.advanced == []

    def test_skipped_items(self, executor, job_manager, documents, workflow, settings, make_item):
        items = [make_item("B", finish_status=StepStatus.DEACTIVATED), make_item("E", pages=0)]

        job = job_manager.create_job(settings)
        executor.execute(job, items)

        assert job.items_skipped == 2
        assert job.rows_written == 0
        assert not job.has_errors
        _, rows = read_report(job.artifacts.report_path)
        assert rows == []

    def test_unexpected_failure_marks_job(self, job_manager, workflow, settings, make_item):
        class BrokenExtractor:
            def extract(self, item, settings, project=None):
                raise RuntimeError("boom")

        executor = ExportExecutor(
            extractor=BrokenExtractor(),
            materializer=FileMaterializer(),
            transitioner=WorkflowTransitioner(workflow),
            job_manager=job_manager,
        )
        job = job_manager.create_job(settings)
        with pytest.raises(RuntimeError):
            executor.execute(job, [make_item("A", pages=1)])
        assert job.status == JobStatus.FAILED
        assert job.progress.stage == ExportState.FAILED.value

    def test_control_characters_do_not_stop_export(self, executor, job_manager, documents, workflow,
                                                   settings, make_item, sample_document,
                                                   document_factory):
        items = [make_item("A", pages=1), make_item("B", pages=2)]
        documents.put("A", sample_document)
        documents.put("B", document_factory({"Notes01": "line\x0bbreak"}))

        job = job_manager.create_job(settings)
        executor.execute(job, items)

        assert not job.has_errors
        _, rows = read_report(job.artifacts.report_path)
        assert len(rows) == 3
        assert rows[1][REPORT_HEADER.index("Notes_01")] == "linebreak"
        assert sorted(workflow.advanced) == [("A", CLOSE), ("B", CLOSE)]

    def test_listing_failure_isolated(self, executor, job_manager, documents, workflow,
                                      settings, make_item, sample_document, monkeypatch):
        items = [make_item("A", pages=2), make_item("B", pages=2), make_item("C", pages=1)]
        for item in items:
            documents.put(item.title, sample_document)
        broken = items[1].get_image_folder()
        iterdir = Path.iterdir

        def flaky_iterdir(self):
            if self == broken:
                raise PermissionError("denied")
            return iterdir(self)

        monkeypatch.setattr(Path, "iterdir", flaky_iterdir)
        job = job_manager.create_job(settings)
        executor.execute(job, items)

        assert "提取失败:B" in job.flags
        assert job.excluded_items == ["B"]
        assert job.rows_written == 3
        assert job.artifacts.report_path.exists()
        assert workflow.advanced == []

    def test_report_failure_blocks_transition(self, executor, job_manager, documents, workflow,
                                              settings, make_item, sample_document):
        items = [make_item("A", pages=1), make_item("C", pages=1)]
        for item in items:
            documents.put(item.title, sample_document)
        # 目标文件名被同名目录占用
        (settings.export_root / "metadata.xlsx").mkdir(parents=True)

        job = job_manager.create_job(settings)
        executor.execute(job, items)

        assert "报表写出失败" in job.flags
        assert job.has_errors
        assert job.artifacts.report_path is None
        assert job.items_exported == 2
        assert workflow.advanced == []
        assert all(i.has_step(CLOSE, StepStatus.OPEN) for i in items)


class TestStages:
    """阶段进度测试"""

    def test_progress_at(self):
        stage = WORKER_STAGES[ExportState.EXTRACTING]
        assert stage.progress_at(0, 10) == stage.progress_start
        assert stage.progress_at(10, 10) == stage.progress_end
        assert stage.progress_at(0, 0) == stage.progress_start
