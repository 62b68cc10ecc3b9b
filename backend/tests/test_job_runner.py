"""
Tests for the transcode job runner.

Uses FakeExecutor (conftest) in place of ffmpeg; no subprocess is spawned.

QC:
1. Missing primary clip is rejected before any filesystem activity
2. Success returns the output bytes and leaves no artifacts behind
3. Every failure class still leaves no artifacts behind
4. Cleanup happens only after the output has been read
5. Outro strategies produce the expected invocation sequences
"""

import pytest

from app.config import ServiceSettings
from app.execution.errors import (
    ClipValidationError,
    ReadbackError,
    StagingError,
    TranscodeError,
)
from app.execution.models import OutroStrategy, TranscodeRequest, UploadedClip
from app.execution.profiles import Resolution
from app.execution.runner import TranscodeJobRunner


def _clip(name="holiday.mov", data=b"primary-bytes") -> UploadedClip:
    return UploadedClip(filename=name, data=data, content_type="video/quicktime")


class TestValidation:
    """Precondition: primary clip present."""

    def test_missing_primary_rejected_before_staging(self, settings, work_dir, fake_executor):
        """
        GIVEN: No primary clip
        WHEN: runner.run()
        THEN: ClipValidationError, work dir never created, ffmpeg never invoked
        """
        runner = TranscodeJobRunner(settings, executor=fake_executor)

        with pytest.raises(ClipValidationError) as exc_info:
            runner.run(TranscodeRequest(outro=_clip("outro.mp4")))

        assert exc_info.value.http_status == 400
        assert not work_dir.exists()
        assert fake_executor.invocations == []

    def test_empty_primary_rejected(self, settings, work_dir, fake_executor):
        runner = TranscodeJobRunner(settings, executor=fake_executor)
        with pytest.raises(ClipValidationError):
            runner.run(TranscodeRequest(primary=_clip(data=b"")))
        assert not work_dir.exists()


class TestSuccess:
    def test_no_outro_round_trip(self, settings, work_dir, fake_executor):
        runner = TranscodeJobRunner(settings, executor=fake_executor)

        result = runner.run(TranscodeRequest(primary=_clip(), resolution="720p"))

        assert result.content == fake_executor.payload
        assert result.media_type == "video/mp4"
        assert (result.width, result.height) == (720, 1280)
        assert result.resolution is Resolution.HD_720
        assert result.filename.startswith("holiday_720p_")
        assert result.filename.endswith(".mp4")
        assert result.has_outro is False
        assert result.strategy is None
        assert len(fake_executor.invocations) == 1
        assert list(work_dir.iterdir()) == []

    def test_executable_comes_from_settings(self, settings, fake_executor):
        runner = TranscodeJobRunner(settings, executor=fake_executor)
        runner.run(TranscodeRequest(primary=_clip()))
        assert fake_executor.invocations[0].executable == "/usr/bin/ffmpeg"

    def test_request_log_names_declared_content_type(self, settings, fake_executor, caplog):
        caplog.set_level("INFO", logger="app.execution.runner")
        runner = TranscodeJobRunner(settings, executor=fake_executor)

        runner.run(TranscodeRequest(primary=_clip()))
        runner.run(TranscodeRequest(primary=UploadedClip(filename="raw.bin", data=b"x")))

        assert "(video/quicktime, 13 bytes)" in caplog.text
        assert "(unknown type, 1 bytes)" in caplog.text

    def test_input_staged_with_upload_suffix(self, settings, fake_executor):
        runner = TranscodeJobRunner(settings, executor=fake_executor)
        result = runner.run(TranscodeRequest(primary=_clip("clip.MOV")))
        seen = fake_executor.seen_files[0]
        assert f"input_{result.token}.mov" in seen

    def test_two_pass_outro(self, settings, work_dir, fake_executor):
        runner = TranscodeJobRunner(settings, executor=fake_executor)

        result = runner.run(
            TranscodeRequest(
                primary=_clip(), outro=_clip("outro.mp4", b"outro"), resolution="4K", mirrored=True
            )
        )

        labels = [inv.label for inv in fake_executor.invocations]
        assert labels == ["normalize_primary", "normalize_outro", "concat_manifest"]
        assert result.strategy is OutroStrategy.TWO_PASS
        assert result.invocation_count == 3
        assert (result.width, result.height) == (2160, 3840)

        # Manifest was on disk when the concat pass ran
        token = result.token
        assert f"concat_{token}.txt" in fake_executor.seen_files[2]
        assert f"primary_norm_{token}.mp4" in fake_executor.seen_files[2]
        assert f"outro_norm_{token}.mp4" in fake_executor.seen_files[2]

        assert list(work_dir.iterdir()) == []

    def test_filter_graph_outro(self, work_dir, fake_executor):
        settings = ServiceSettings(
            work_dir=work_dir,
            ffmpeg_path="ffmpeg",
            outro_strategy=OutroStrategy.FILTER_GRAPH,
        )
        runner = TranscodeJobRunner(settings, executor=fake_executor)

        result = runner.run(
            TranscodeRequest(primary=_clip(), outro=_clip("outro.mp4", b"outro"))
        )

        assert len(fake_executor.invocations) == 1
        assert fake_executor.invocations[0].input_count == 2
        assert result.strategy is OutroStrategy.FILTER_GRAPH
        assert list(work_dir.iterdir()) == []

    def test_empty_outro_is_ignored(self, settings, fake_executor):
        runner = TranscodeJobRunner(settings, executor=fake_executor)
        result = runner.run(
            TranscodeRequest(primary=_clip(), outro=_clip("outro.mp4", b""))
        )
        assert result.has_outro is False
        assert len(fake_executor.invocations) == 1

    def test_unknown_resolution_behaves_as_1080p(self, settings, make_executor):
        unknown_exec = make_executor()
        fhd_exec = make_executor()

        unknown = TranscodeJobRunner(settings, executor=unknown_exec).run(
            TranscodeRequest(primary=_clip(), resolution="SuperHD")
        )
        fhd = TranscodeJobRunner(settings, executor=fhd_exec).run(
            TranscodeRequest(primary=_clip(), resolution="1080p")
        )

        assert (unknown.width, unknown.height) == (fhd.width, fhd.height) == (1080, 1920)

        def strip(invocation):
            return [a for a in invocation.args if unknown.token not in a and fhd.token not in a]

        assert strip(unknown_exec.invocations[0]) == strip(fhd_exec.invocations[0])


class TestFailureCleanup:
    """Every failure path leaves the working area clean."""

    def test_transcode_failure_cleans_up(self, settings, work_dir, make_executor):
        executor = make_executor(fail_on="transcode")
        runner = TranscodeJobRunner(settings, executor=executor)

        with pytest.raises(TranscodeError) as exc_info:
            runner.run(TranscodeRequest(primary=_clip()))

        assert exc_info.value.exit_code == 1
        assert list(work_dir.iterdir()) == []

    def test_two_pass_stops_at_first_failure(self, settings, work_dir, make_executor):
        executor = make_executor(fail_on="normalize_outro")
        runner = TranscodeJobRunner(settings, executor=executor)

        with pytest.raises(TranscodeError):
            runner.run(TranscodeRequest(primary=_clip(), outro=_clip("o.mp4", b"o")))

        labels = [inv.label for inv in executor.invocations]
        assert labels == ["normalize_primary", "normalize_outro"]
        assert list(work_dir.iterdir()) == []

    def test_missing_output_is_readback_error(self, settings, work_dir, make_executor):
        executor = make_executor(write_output=False)
        runner = TranscodeJobRunner(settings, executor=executor)

        with pytest.raises(ReadbackError):
            runner.run(TranscodeRequest(primary=_clip()))

        assert list(work_dir.iterdir()) == []

    def test_unwritable_work_dir_is_staging_error(self, tmp_path, fake_executor):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not directory")
        settings = ServiceSettings(work_dir=blocker / "work", ffmpeg_path="ffmpeg")
        runner = TranscodeJobRunner(settings, executor=fake_executor)

        with pytest.raises(StagingError):
            runner.run(TranscodeRequest(primary=_clip()))
        assert fake_executor.invocations == []

    def test_staging_write_failure_cleans_partial_files(
        self, settings, work_dir, fake_executor, monkeypatch
    ):
        from pathlib import Path

        original_write = Path.write_bytes

        def failing_write(self, data):
            if self.name.startswith("outro_"):
                original_write(self, data[:1])
                raise OSError("No space left on device")
            return original_write(self, data)

        monkeypatch.setattr(Path, "write_bytes", failing_write)
        runner = TranscodeJobRunner(settings, executor=fake_executor)

        with pytest.raises(StagingError, match="No space left"):
            runner.run(TranscodeRequest(primary=_clip(), outro=_clip("o.mp4", b"outro")))

        assert fake_executor.invocations == []
        assert list(work_dir.iterdir()) == []


class TestLeftoverReporting:
    """Files that survive release are reported by the runner."""

    @pytest.fixture
    def locked_inputs(self, monkeypatch):
        from pathlib import Path

        original_unlink = Path.unlink

        def flaky_unlink(self, missing_ok=False):
            if self.name.startswith("input_"):
                raise PermissionError("locked")
            return original_unlink(self, missing_ok=missing_ok)

        monkeypatch.setattr(Path, "unlink", flaky_unlink)

    def test_success_still_returned_and_leftover_warned(
        self, settings, work_dir, fake_executor, locked_inputs, caplog
    ):
        """
        GIVEN: The staged input cannot be deleted
        WHEN: runner.run() succeeds
        THEN: Result is returned, the surviving file is named in a warning
        """
        runner = TranscodeJobRunner(settings, executor=fake_executor)

        result = runner.run(TranscodeRequest(primary=_clip()))

        assert result.content == fake_executor.payload
        assert [p.name for p in work_dir.iterdir()] == [f"input_{result.token}.mov"]
        runner_warnings = [
            r for r in caplog.records
            if r.name == "app.execution.runner" and r.levelname == "WARNING"
        ]
        assert len(runner_warnings) == 1
        assert f"input_{result.token}.mov" in runner_warnings[0].getMessage()
        assert "1 artifact(s) left" in runner_warnings[0].getMessage()

    def test_failure_path_also_reports(
        self, settings, work_dir, make_executor, locked_inputs, caplog
    ):
        runner = TranscodeJobRunner(settings, executor=make_executor(fail_on="transcode"))

        with pytest.raises(TranscodeError):
            runner.run(TranscodeRequest(primary=_clip()))

        assert "artifact(s) left" in caplog.text
        assert [p.name.split("_")[0] for p in work_dir.iterdir()] == ["input"]

    def test_clean_run_reports_nothing(self, settings, fake_executor, caplog):
        runner = TranscodeJobRunner(settings, executor=fake_executor)
        runner.run(TranscodeRequest(primary=_clip()))
        assert "artifact(s) left" not in caplog.text


class TestConcurrencySafety:
    def test_back_to_back_requests_use_distinct_tokens(self, settings, fake_executor):
        runner = TranscodeJobRunner(settings, executor=fake_executor)
        first = runner.run(TranscodeRequest(primary=_clip()))
        second = runner.run(TranscodeRequest(primary=_clip()))
        assert first.token != second.token
        outputs = {inv.args[-1] for inv in fake_executor.invocations}
        assert len(outputs) == 2
