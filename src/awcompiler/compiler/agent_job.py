"""Main execution job.

The agent job always has the identifier `agent`. The workflow title is only
used for display (the pipeline `name:` and environment variables), so titles
containing "/", ":", "@" or parentheses never leak into job references.

Step sequence:

1. Checkout
2. Engine install and execution
3. Secret redaction (always present, even when no secrets are referenced)
4. Upload of safe-output records (when any safe output is enabled)
5. Engine output collection and cleanup
6. Unified upload of agent logs

The step-order tracker validates the sequence before the job is returned.
"""

from __future__ import annotations

import logging
from typing import Any

from awcompiler.compiler.actions import ActionPinLookup, resolve_action_reference
from awcompiler.compiler.engine_output import plan_engine_output_steps
from awcompiler.compiler.engines import AGENT_STDIO_LOG_PATH, EngineDescriptor
from awcompiler.compiler.jobs import Job
from awcompiler.compiler.step_order import StepOrderTracker
from awcompiler.core.types import AGENT_JOB_NAME, ConfigMap, Step

logger = logging.getLogger(__name__)

REDACT_STEP_NAME = "Redact secrets in logs"
UPLOAD_SAFE_OUTPUTS_STEP_NAME = "Upload Safe Outputs"
UPLOAD_AGENT_ARTIFACTS_STEP_NAME = "Upload agent artifacts"

SAFE_OUTPUTS_PATH = "/tmp/gh-aw/safeoutputs/outputs.jsonl"
SAFE_OUTPUTS_ARTIFACT_NAME = "safe-output"
AGENT_ARTIFACTS_NAME = "agent-artifacts"
MCP_LOGS_PATH = "/tmp/gh-aw/mcp-logs/"

# Directories scanned by the redaction step
REDACTION_SCAN_PATHS: tuple[str, ...] = ("/tmp/gh-aw/",)


def _redact_step() -> Step:
    return {
        "name": REDACT_STEP_NAME,
        "if": "always()",
        "run": "".join(
            f'find {path} -type f \\( -name "*.log" -o -name "*.txt" -o -name "*.jsonl" '
            f'-o -name "*.json" -o -name "*.md" \\) -exec sed -i -E '
            f'"s/(gh[pousr]_[A-Za-z0-9]{{36,}})/***REDACTED***/g" {{}} +\n'
            for path in REDACTION_SCAN_PATHS
        ),
    }


def _upload_step(name: str, artifact: str, paths: list[str], uses: str) -> Step:
    return {
        "name": name,
        "if": "always()",
        "continue-on-error": True,
        "uses": uses,
        "with": {
            "name": artifact,
            "path": "\n".join(paths) + "\n",
            "if-no-files-found": "ignore",
        },
    }


def build_agent_job(
    workflow_name: str,
    engine: EngineDescriptor,
    action_pins: ActionPinLookup,
    *,
    runs_on: str,
    permissions: Any = None,
    has_safe_outputs: bool = False,
) -> Job:
    """Build the main execution job.

    Args:
        workflow_name: Human-readable workflow title (display only).
        engine: Engine running the agent.
        action_pins: Pin source for referenced actions.
        runs_on: Runner label.
        permissions: Frontmatter `permissions:` value, passed through.
        has_safe_outputs: Whether any safe-output directive is enabled.

    Returns:
        The agent job.

    Raises:
        StepOrderError: If the generated steps violate ordering invariants.
        ActionPinError: If a referenced action has no pin.

    """
    tracker = StepOrderTracker(job_name=AGENT_JOB_NAME, requires_sanitization=True)
    checkout = resolve_action_reference("actions/checkout", action_pins, "v5").uses
    upload = resolve_action_reference("actions/upload-artifact", action_pins, "v4").uses

    steps: list[Step] = [
        {
            "name": "Checkout repository",
            "uses": checkout,
            "with": {"persist-credentials": False},
        }
    ]
    steps.extend(engine.execution_steps(workflow_name))

    tracker.record_sanitization(REDACT_STEP_NAME, REDACTION_SCAN_PATHS)
    steps.append(_redact_step())

    if has_safe_outputs:
        tracker.record_artifact_upload(UPLOAD_SAFE_OUTPUTS_STEP_NAME, [SAFE_OUTPUTS_PATH])
        steps.append(
            _upload_step(
                UPLOAD_SAFE_OUTPUTS_STEP_NAME,
                SAFE_OUTPUTS_ARTIFACT_NAME,
                [SAFE_OUTPUTS_PATH],
                upload,
            )
        )
        steps.append(
            {
                "name": "Collect safe outputs",
                "id": "collect_output",
                "run": f'echo "count=$(wc -l < {SAFE_OUTPUTS_PATH} 2>/dev/null || echo 0)" '
                '>> "$GITHUB_OUTPUT"\n',
            }
        )

    steps.extend(plan_engine_output_steps(engine.declared_output_files(), tracker, upload))

    artifact_paths = [AGENT_STDIO_LOG_PATH, MCP_LOGS_PATH]
    tracker.record_artifact_upload(UPLOAD_AGENT_ARTIFACTS_STEP_NAME, artifact_paths)
    steps.append(
        _upload_step(
            UPLOAD_AGENT_ARTIFACTS_STEP_NAME, AGENT_ARTIFACTS_NAME, artifact_paths, upload
        )
    )

    tracker.validate()

    body: ConfigMap = {"runs-on": runs_on}
    body["permissions"] = permissions if permissions is not None else {"contents": "read"}
    if has_safe_outputs:
        body["outputs"] = {"output_count": "${{ steps.collect_output.outputs.count }}"}
    body["steps"] = steps

    logger.debug("Built agent job for '%s' with %d steps", workflow_name, len(steps))
    return Job(name=AGENT_JOB_NAME, body=body)
