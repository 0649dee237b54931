"""Collection of engine-declared output files.

Engines may leave files behind (logs, session transcripts) that are worth
keeping. This module turns the engine's declared output list into:

- one upload step covering every declared path plus the redacted-URLs log,
  tolerant of missing files;
- a cleanup step deleting the declared paths that live in the workspace
  (scratch-directory files are left alone).

Both steps are recorded on the job's StepOrderTracker so the ordering
invariants can be checked when the job is complete.
"""

import logging
from collections.abc import Sequence

from awcompiler.compiler.step_order import StepOrderTracker
from awcompiler.core.types import REDACTED_URLS_LOG_PATH, Step, is_scratch_path

logger = logging.getLogger(__name__)

UPLOAD_STEP_NAME = "Upload engine output files"
CLEANUP_STEP_NAME = "Clean up engine output files"
OUTPUT_ARTIFACT_NAME = "agent_outputs"


def generate_cleanup_step(output_files: Sequence[str]) -> Step | None:
    """Build the step removing workspace output files.

    Args:
        output_files: Declared output paths.

    Returns:
        The cleanup step, or None when every path is in the scratch directory.

    """
    workspace_files = [f for f in output_files if not is_scratch_path(f)]
    if not workspace_files:
        logger.debug("No workspace files to clean up")
        return None

    logger.debug("Generated cleanup step for %d workspace files", len(workspace_files))
    return {
        "name": CLEANUP_STEP_NAME,
        "run": "".join(f"rm -fr {f}\n" for f in workspace_files),
    }


def plan_engine_output_steps(
    output_files: Sequence[str],
    tracker: StepOrderTracker,
    upload_action: str,
) -> list[Step]:
    """Plan upload and cleanup steps for engine-declared output files.

    Args:
        output_files: Paths or globs the engine may produce.
        tracker: Step-order tracker of the job receiving the steps.
        upload_action: `uses:` value for the artifact upload action.

    Returns:
        Steps to append to the job, in order. Empty when nothing is declared.

    """
    if not output_files:
        logger.debug("No engine output files to collect")
        return []

    paths = [*output_files, REDACTED_URLS_LOG_PATH]
    logger.debug("Generating engine output collection step for %d files", len(paths))

    tracker.record_artifact_upload(UPLOAD_STEP_NAME, paths)
    steps: list[Step] = [
        {
            "name": UPLOAD_STEP_NAME,
            "uses": upload_action,
            "with": {
                "name": OUTPUT_ARTIFACT_NAME,
                "path": "\n".join(paths) + "\n",
                "if-no-files-found": "ignore",
            },
        }
    ]

    cleanup = generate_cleanup_step(paths)
    if cleanup is not None:
        tracker.record_cleanup(CLEANUP_STEP_NAME, [f for f in paths if not is_scratch_path(f)])
        steps.append(cleanup)

    return steps
