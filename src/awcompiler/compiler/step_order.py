"""Step ordering validation for generated jobs.

The StepOrderTracker records, in emission order, the steps of one job that
matter for pipeline safety and checks two invariants once the job is fully
emitted:

1. Every artifact upload comes after the job's secret redaction step
   (when redaction is configured for the job).
2. A cleanup step deleting any path of an upload runs strictly after
   that upload.

A tracker belongs to exactly one job of one compilation pass. Create a new
one per job; it holds no shared state.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from awcompiler.core.exceptions import StepOrderError

logger = logging.getLogger(__name__)


class StepKind(StrEnum):
    """Kinds of steps the tracker cares about."""

    SANITIZATION = "sanitization"
    UPLOAD = "upload"
    CLEANUP = "cleanup"


@dataclass(frozen=True)
class ArtifactRecord:
    """One recorded step.

    Attributes:
        step_name: Display name of the step.
        paths: Paths or globs the step touches.
        ordinal: Emission position within the job, strictly increasing.
        kind: What the step does.

    """

    step_name: str
    paths: tuple[str, ...]
    ordinal: int
    kind: StepKind = StepKind.UPLOAD


_GLOB_CHARS = frozenset("*?[")


def _covers(pattern: str, path: str) -> bool:
    if pattern == path:
        return True
    directory = pattern.rstrip("/")
    if pattern and path.startswith(directory + "/"):
        return True
    return bool(_GLOB_CHARS.intersection(pattern)) and fnmatch.fnmatchcase(
        path.rstrip("/"), directory
    )


def paths_overlap(a: str, b: str) -> bool:
    """Check if two paths refer to overlapping files.

    Paths overlap when equal, when one names a directory containing the
    other (with or without a trailing `/`), or when one is a glob pattern
    (`*`, `?`, `[...]`) matching the other. Two glob patterns overlap only
    if one matches the other literally.

    Examples:
        >>> paths_overlap("/tmp/gh-aw/mcp-logs/", "/tmp/gh-aw/mcp-logs/a.log")
        True
        >>> paths_overlap("/tmp/gh-aw/mcp-logs", "/tmp/gh-aw/mcp-logs/a.log")
        True
        >>> paths_overlap("/tmp/gh-aw/out/*.json", "/tmp/gh-aw/out/a.json")
        True
        >>> paths_overlap("out.json", "out.json.bak")
        False

    """
    return _covers(a, b) or _covers(b, a)


@dataclass
class StepOrderTracker:
    """Per-job record of safety-relevant steps.

    Attributes:
        job_name: Job the tracker belongs to (used in error messages).
        requires_sanitization: Whether uploads must follow a redaction step.

    """

    job_name: str
    requires_sanitization: bool = True
    _records: list[ArtifactRecord] = field(default_factory=list, repr=False)
    _next_ordinal: int = field(default=0, repr=False)

    @property
    def records(self) -> tuple[ArtifactRecord, ...]:
        """Records in emission order."""
        return tuple(self._records)

    def _append(self, kind: StepKind, step_name: str, paths: Iterable[str]) -> ArtifactRecord:
        record = ArtifactRecord(
            step_name=step_name,
            paths=tuple(paths),
            ordinal=self._next_ordinal,
            kind=kind,
        )
        self._next_ordinal += 1
        self._records.append(record)
        logger.debug(
            "Recorded %s step '%s' at ordinal %d (%d paths) in job %s",
            kind,
            step_name,
            record.ordinal,
            len(record.paths),
            self.job_name,
        )
        return record

    def record_sanitization(self, step_name: str, paths: Iterable[str] = ()) -> ArtifactRecord:
        """Record the job's secret redaction step."""
        return self._append(StepKind.SANITIZATION, step_name, paths)

    def record_artifact_upload(self, step_name: str, paths: Iterable[str]) -> ArtifactRecord:
        """Record an artifact upload step.

        Args:
            step_name: Display name of the upload step.
            paths: Paths or globs uploaded by the step.

        Returns:
            The record, tagged with the next emission ordinal.

        """
        return self._append(StepKind.UPLOAD, step_name, paths)

    def record_cleanup(self, step_name: str, paths: Iterable[str]) -> ArtifactRecord:
        """Record a step deleting files."""
        return self._append(StepKind.CLEANUP, step_name, paths)

    def add_record(self, record: ArtifactRecord) -> None:
        """Insert a pre-built record, keeping its ordinal.

        Used when steps are assembled out of emission order. The next
        generated ordinal stays above every ordinal seen so far.
        """
        self._records.append(record)
        self._next_ordinal = max(self._next_ordinal, record.ordinal + 1)

    def _of_kind(self, kind: StepKind) -> list[ArtifactRecord]:
        return [r for r in self._records if r.kind == kind]

    def validate(self) -> None:
        """Check the recorded step sequence.

        Clears the records on success.

        Raises:
            StepOrderError: If an upload precedes redaction or a cleanup
                does not come strictly after an upload of the same files.

        """
        violations: list[tuple[str, int, str, int | None]] = []
        messages: list[str] = []

        uploads = self._of_kind(StepKind.UPLOAD)

        if self.requires_sanitization:
            sanitizations = self._of_kind(StepKind.SANITIZATION)
            first_sanitization = min((s.ordinal for s in sanitizations), default=None)
            for upload in uploads:
                if first_sanitization is None or upload.ordinal < first_sanitization:
                    violations.append(
                        (upload.step_name, upload.ordinal, "secret redaction", first_sanitization)
                    )
                    if first_sanitization is None:
                        messages.append(
                            f"  - '{upload.step_name}' (ordinal {upload.ordinal}) uploads "
                            f"artifacts but the job has no secret redaction step"
                        )
                    else:
                        messages.append(
                            f"  - '{upload.step_name}' (ordinal {upload.ordinal}) runs before "
                            f"secret redaction (ordinal {first_sanitization})"
                        )

        for cleanup in self._of_kind(StepKind.CLEANUP):
            for upload in uploads:
                overlapping = any(
                    paths_overlap(c, u) for c in cleanup.paths for u in upload.paths
                )
                if overlapping and cleanup.ordinal <= upload.ordinal:
                    violations.append(
                        (cleanup.step_name, cleanup.ordinal, upload.step_name, upload.ordinal)
                    )
                    messages.append(
                        f"  - '{cleanup.step_name}' (ordinal {cleanup.ordinal}) deletes files "
                        f"before they are uploaded by '{upload.step_name}' "
                        f"(ordinal {upload.ordinal})"
                    )

        if violations:
            raise StepOrderError(
                f"Step ordering violation in job '{self.job_name}':\n"
                + "\n".join(messages)
                + "\n  How to fix: Emit secret redaction before uploads and "
                "cleanup after the uploads it affects",
                violations=tuple(violations),
            )

        logger.debug(
            "Step order validated for job %s: %d uploads", self.job_name, len(uploads)
        )
        self._records.clear()
