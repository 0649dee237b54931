"""Jobs publishing the agent's safe outputs.

Every enabled directive becomes one job that downloads the agent's
safe-output records and applies the ones of its kind through a handler
script. Directive settings reach the handler as GH_AW_* environment
variables. Each job depends on the agent job by its fixed identifier.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from awcompiler.compiler.actions import ActionPinLookup, resolve_action_reference
from awcompiler.compiler.jobs import Job
from awcompiler.compiler.safe_outputs import (
    SafeOutputConfig,
    SafeOutputFilterConfig,
    SafeOutputKind,
    SafeOutputsConfig,
    SafeOutputTargetConfig,
)
from awcompiler.core.types import AGENT_JOB_NAME

logger = logging.getLogger(__name__)

AGENT_OUTPUT_DIR = "/tmp/gh-aw/safeoutputs/"
AGENT_OUTPUT_FILE = "outputs.jsonl"
HANDLER_SCRIPT_DIR = "/opt/gh-aw/actions"

# Directives that pick up issue numbers created earlier in the same run
_CONSUMES_TEMPORARY_IDS: frozenset[SafeOutputKind] = frozenset(
    {SafeOutputKind.CREATE_DISCUSSION, SafeOutputKind.ADD_COMMENT}
)

_PERMISSIONS: dict[SafeOutputKind, dict[str, str]] = {
    SafeOutputKind.CREATE_ISSUE: {"contents": "read", "issues": "write"},
    SafeOutputKind.CREATE_DISCUSSION: {"contents": "read", "discussions": "write"},
    SafeOutputKind.CREATE_PULL_REQUEST: {
        "contents": "write",
        "issues": "read",
        "pull-requests": "write",
    },
    SafeOutputKind.ADD_COMMENT: {
        "contents": "read",
        "discussions": "write",
        "issues": "write",
        "pull-requests": "write",
    },
    SafeOutputKind.ADD_LABELS: {"contents": "read", "issues": "write", "pull-requests": "write"},
    SafeOutputKind.ADD_REVIEWER: {"contents": "read", "pull-requests": "write"},
    SafeOutputKind.ASSIGN_MILESTONE: {"contents": "read", "issues": "write"},
    SafeOutputKind.CLOSE_ISSUE: {"contents": "read", "issues": "write"},
    SafeOutputKind.UPDATE_ISSUE: {"contents": "read", "issues": "write"},
    SafeOutputKind.UPDATE_RELEASE: {"contents": "write"},
    SafeOutputKind.MARK_PULL_REQUEST_AS_READY_FOR_REVIEW: {
        "contents": "read",
        "pull-requests": "write",
    },
    SafeOutputKind.NOOP: {"contents": "read"},
    SafeOutputKind.MISSING_TOOL: {"contents": "read"},
}


def _env_value(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ",".join(str(item) for item in value) if value else None
    return str(value)


def _group_env(prefix: str, group: BaseModel) -> dict[str, str]:
    env: dict[str, str] = {}
    for name in type(group).model_fields:
        value = _env_value(getattr(group, name))
        if value is not None:
            env[f"{prefix}_{name.upper()}"] = value
    return env


def build_handler_env(config: SafeOutputConfig, outputs: SafeOutputsConfig) -> dict[str, str]:
    """Environment variables describing one directive to its handler.

    Args:
        config: Directive configuration.
        outputs: Whole safe-outputs section (global settings).

    Returns:
        Env mapping, keys sorted for stable output.

    """
    prefix = f"GH_AW_{config.job_name.upper()}"
    env: dict[str, str] = {
        "GH_AW_AGENT_OUTPUT": AGENT_OUTPUT_DIR + AGENT_OUTPUT_FILE,
        f"{prefix}_MAX": str(config.max),
    }
    if outputs.staged:
        env["GH_AW_SAFE_OUTPUTS_STAGED"] = "true"

    target = getattr(config, "target", None)
    if isinstance(target, SafeOutputTargetConfig):
        env[f"{prefix}_TARGET"] = target.target or "triggering"
        if target.target_repo:
            env["GH_AW_TARGET_REPO_SLUG"] = target.target_repo

    filters = getattr(config, "filters", None)
    if isinstance(filters, SafeOutputFilterConfig):
        env.update(_group_env(prefix, filters))

    entity = getattr(config, "entity", None)
    if isinstance(entity, BaseModel):
        env.update(_group_env(prefix, entity))

    if config.kind in _CONSUMES_TEMPORARY_IDS and outputs.get(SafeOutputKind.CREATE_ISSUE):
        env["GH_AW_TEMPORARY_ID_MAP"] = (
            f"${{{{ needs.{SafeOutputKind.CREATE_ISSUE.job_name}.outputs.temporary_id_map }}}}"
        )

    return dict(sorted(env.items()))


def build_safe_output_job(
    config: SafeOutputConfig,
    outputs: SafeOutputsConfig,
    action_pins: ActionPinLookup,
    *,
    runs_on: str,
) -> Job:
    """Build the job applying one directive.

    Args:
        config: Directive configuration.
        outputs: Whole safe-outputs section.
        action_pins: Pin source for referenced actions.
        runs_on: Runner label (used when the section sets none).

    Returns:
        Job depending on the agent job.

    """
    job_name = config.job_name
    download = resolve_action_reference("actions/download-artifact", action_pins, "v5").uses
    script = resolve_action_reference("actions/github-script", action_pins, "v8").uses

    job = Job(name=job_name, consumes_agent_output=True)
    job.add_dependency(AGENT_JOB_NAME)
    if config.kind in _CONSUMES_TEMPORARY_IDS and outputs.get(SafeOutputKind.CREATE_ISSUE):
        job.add_dependency(SafeOutputKind.CREATE_ISSUE.job_name)

    token = config.base.github_token or outputs.github_token
    script_with: dict[str, Any] = {
        "script": (
            f"const {{ main }} = require('{HANDLER_SCRIPT_DIR}/{job_name}.cjs');\n"
            "await main();\n"
        )
    }
    if token:
        script_with["github-token"] = token

    job.body = {
        "if": f"!cancelled() && needs.{AGENT_JOB_NAME}.result != 'skipped'",
        "runs-on": outputs.runs_on or runs_on,
        "permissions": dict(_PERMISSIONS[config.kind]),
        "timeout-minutes": 10,
        "steps": [
            {
                "name": "Download agent output artifact",
                "continue-on-error": True,
                "uses": download,
                "with": {"name": "safe-output", "path": AGENT_OUTPUT_DIR},
            },
            {
                "name": f"Process {config.kind.value}",
                "id": job_name,
                "uses": script,
                "env": build_handler_env(config, outputs),
                "with": script_with,
            },
        ],
    }
    if config.kind is SafeOutputKind.CREATE_ISSUE:
        job.body["outputs"] = {
            "temporary_id_map": f"${{{{ steps.{job_name}.outputs.temporary_id_map }}}}",
            "issue_number": f"${{{{ steps.{job_name}.outputs.issue_number }}}}",
        }

    logger.debug("Built safe-output job %s (needs: %s)", job_name, ", ".join(job.needs))
    return job


def build_safe_output_jobs(
    outputs: SafeOutputsConfig,
    action_pins: ActionPinLookup,
    *,
    runs_on: str,
) -> list[Job]:
    """Build jobs for all enabled directives, in resolution order."""
    return [
        build_safe_output_job(config, outputs, action_pins, runs_on=runs_on)
        for config in outputs.enabled()
    ]
