"""Tests for step ordering validation.

Tests cover:
- Uploads after redaction pass, before or without redaction fail
- Cleanup strictly after overlapping uploads
- Path overlap rules
- Records cleared after successful validation
"""

import pytest

from awcompiler.compiler.step_order import (
    ArtifactRecord,
    StepKind,
    StepOrderTracker,
    paths_overlap,
)
from awcompiler.core.exceptions import StepOrderError


class TestPathsOverlap:
    """Test paths_overlap function."""

    def test_equal_paths(self) -> None:
        """Identical paths overlap."""
        assert paths_overlap("output.json", "output.json")

    def test_directory_contains_file(self) -> None:
        """A directory overlaps files beneath it, in either order."""
        assert paths_overlap("/tmp/gh-aw/mcp-logs/", "/tmp/gh-aw/mcp-logs/server.log")
        assert paths_overlap("/tmp/gh-aw/mcp-logs/server.log", "/tmp/gh-aw/mcp-logs/")

    def test_shared_prefix_without_directory(self) -> None:
        """A plain prefix is not containment."""
        assert not paths_overlap("out.json", "out.json.bak")

    def test_directory_without_trailing_slash(self) -> None:
        """A bare directory name contains the files beneath it."""
        assert paths_overlap("logs", "logs/a.log")
        assert paths_overlap("/tmp/gh-aw/logs/a.log", "/tmp/gh-aw/logs")
        assert not paths_overlap("logs", "logs.bak/a.log")

    @pytest.mark.parametrize(
        ("pattern", "path"),
        [
            ("out/*.json", "out/a.json"),
            ("out/*", "out/nested/a.json"),
            ("logs/session-?.log", "logs/session-1.log"),
            ("out/[ab].json", "out/b.json"),
            ("out/*/", "out/run/a.log"),
        ],
    )
    def test_glob_matches_path(self, pattern: str, path: str) -> None:
        """A glob overlaps the paths it matches, in either order."""
        assert paths_overlap(pattern, path)
        assert paths_overlap(path, pattern)

    def test_glob_without_match(self) -> None:
        """A glob does not overlap paths it does not match."""
        assert not paths_overlap("out/*.json", "out/a.txt")
        assert not paths_overlap("out/*.json", "other/a.json")


class TestSanitizationOrder:
    """Uploads must follow the redaction step."""

    def test_upload_after_redaction_passes(self) -> None:
        """Redaction then upload validates."""
        tracker = StepOrderTracker(job_name="agent")
        tracker.record_sanitization("Redact secrets in logs")
        tracker.record_artifact_upload("Upload agent artifacts", ["/tmp/gh-aw/agent-stdio.log"])

        tracker.validate()

    def test_upload_before_redaction_fails(self) -> None:
        """An upload emitted before redaction is reported with both ordinals."""
        tracker = StepOrderTracker(job_name="agent")
        tracker.record_artifact_upload("Upload agent artifacts", ["/tmp/gh-aw/agent-stdio.log"])
        tracker.record_sanitization("Redact secrets in logs")

        with pytest.raises(StepOrderError) as exc_info:
            tracker.validate()

        assert exc_info.value.violations == (
            ("Upload agent artifacts", 0, "secret redaction", 1),
        )
        assert "agent" in str(exc_info.value)

    def test_upload_without_redaction_fails(self) -> None:
        """An upload in a job with no redaction step fails."""
        tracker = StepOrderTracker(job_name="agent")
        tracker.record_artifact_upload("Upload engine output files", ["output.json"])

        with pytest.raises(StepOrderError, match="no secret redaction step"):
            tracker.validate()

    def test_redaction_not_required(self) -> None:
        """Jobs without the requirement may upload freely."""
        tracker = StepOrderTracker(job_name="publish", requires_sanitization=False)
        tracker.record_artifact_upload("Upload report", ["report.md"])

        tracker.validate()


class TestCleanupOrder:
    """Cleanup must run strictly after uploads of the same files."""

    def test_cleanup_after_upload_passes(self) -> None:
        """Upload then cleanup of the same path validates."""
        tracker = StepOrderTracker(job_name="agent")
        tracker.record_sanitization("Redact secrets in logs")
        tracker.record_artifact_upload("Upload engine output files", ["output.json"])
        tracker.record_cleanup("Clean up engine output files", ["output.json"])

        tracker.validate()

    def test_cleanup_before_upload_fails(self) -> None:
        """Upload at ordinal 1 and cleanup at ordinal 0 is a violation."""
        tracker = StepOrderTracker(job_name="agent", requires_sanitization=False)
        tracker.add_record(
            ArtifactRecord(step_name="Upload", paths=("output.json",), ordinal=1)
        )
        tracker.add_record(
            ArtifactRecord(
                step_name="Cleanup",
                paths=("output.json",),
                ordinal=0,
                kind=StepKind.CLEANUP,
            )
        )

        with pytest.raises(StepOrderError) as exc_info:
            tracker.validate()

        assert exc_info.value.violations == (("Cleanup", 0, "Upload", 1),)

    def test_cleanup_of_unrelated_paths_passes(self) -> None:
        """Cleanup of files nobody uploads is not constrained."""
        tracker = StepOrderTracker(job_name="agent", requires_sanitization=False)
        tracker.record_cleanup("Clean up", ["scratch.txt"])
        tracker.record_artifact_upload("Upload", ["output.json"])

        tracker.validate()

    def test_cleanup_of_directory_before_upload_fails(self) -> None:
        """Deleting a directory before uploading a file inside it fails."""
        tracker = StepOrderTracker(job_name="agent", requires_sanitization=False)
        tracker.record_cleanup("Clean up", ["logs/"])
        tracker.record_artifact_upload("Upload", ["logs/session.log"])

        with pytest.raises(StepOrderError, match="deletes files before they are uploaded"):
            tracker.validate()

    def test_cleanup_of_glob_before_upload_fails(self) -> None:
        """Deleting by glob before uploading a matching file fails."""
        tracker = StepOrderTracker(job_name="agent", requires_sanitization=False)
        tracker.record_cleanup("Clean up", ["out/*.json"])
        tracker.record_artifact_upload("Upload", ["out/result.json"])

        with pytest.raises(StepOrderError, match="deletes files before they are uploaded"):
            tracker.validate()

    def test_cleanup_of_bare_directory_before_upload_fails(self) -> None:
        """A directory named without trailing slash is still a directory."""
        tracker = StepOrderTracker(job_name="agent", requires_sanitization=False)
        tracker.record_cleanup("Clean up", ["logs"])
        tracker.record_artifact_upload("Upload", ["logs/session.log"])

        with pytest.raises(StepOrderError, match="deletes files before they are uploaded"):
            tracker.validate()


class TestTrackerState:
    """Tracker bookkeeping."""

    def test_ordinals_increase(self) -> None:
        """Records receive consecutive ordinals in emission order."""
        tracker = StepOrderTracker(job_name="agent")
        first = tracker.record_sanitization("Redact secrets in logs")
        second = tracker.record_artifact_upload("Upload", ["a.log"])
        assert (first.ordinal, second.ordinal) == (0, 1)

    def test_add_record_advances_next_ordinal(self) -> None:
        """Generated ordinals stay above explicitly added ones."""
        tracker = StepOrderTracker(job_name="agent")
        tracker.add_record(ArtifactRecord(step_name="Upload", paths=("a",), ordinal=5))
        record = tracker.record_cleanup("Clean up", ["a"])
        assert record.ordinal == 6

    def test_records_cleared_after_validate(self) -> None:
        """Successful validation clears the records."""
        tracker = StepOrderTracker(job_name="agent")
        tracker.record_sanitization("Redact secrets in logs")
        tracker.record_artifact_upload("Upload", ["a.log"])

        tracker.validate()

        assert tracker.records == ()

    def test_records_kept_after_failure(self) -> None:
        """Failed validation keeps the records for inspection."""
        tracker = StepOrderTracker(job_name="agent")
        tracker.record_artifact_upload("Upload", ["a.log"])

        with pytest.raises(StepOrderError):
            tracker.validate()

        assert len(tracker.records) == 1
