"""Tests for the main execution job."""

from dataclasses import dataclass, field

import pytest

from awcompiler.compiler.actions import ActionPins
from awcompiler.compiler.agent_job import (
    REDACT_STEP_NAME,
    UPLOAD_AGENT_ARTIFACTS_STEP_NAME,
    UPLOAD_SAFE_OUTPUTS_STEP_NAME,
    build_agent_job,
)
from awcompiler.compiler.engine_output import CLEANUP_STEP_NAME, UPLOAD_STEP_NAME
from awcompiler.compiler.engines import get_engine
from awcompiler.core.exceptions import ActionPinError
from awcompiler.core.types import AGENT_JOB_NAME, Step


@dataclass
class FakeEngine:
    """Engine declaring arbitrary output files."""

    id: str = "fake"
    output_files: list[str] = field(default_factory=list)

    def declared_output_files(self) -> list[str]:
        return list(self.output_files)

    def execution_steps(self, workflow_name: str) -> list[Step]:
        return [{"name": "Run agent", "run": f"echo {workflow_name}\n"}]


def _step_names(job) -> list[str]:
    return [step["name"] for step in job.body["steps"]]


class TestBuildAgentJob:
    """Test build_agent_job function."""

    def test_job_id_independent_of_title(self) -> None:
        """Punctuation in the title never reaches the job id."""
        job = build_agent_job(
            "CI/CD: Pipeline (v2.0) @main",
            get_engine("claude"),
            ActionPins(),
            runs_on="ubuntu-latest",
        )
        assert job.name == AGENT_JOB_NAME
        assert job.needs == []

    def test_redaction_before_uploads(self) -> None:
        """Redaction precedes every upload step."""
        job = build_agent_job(
            "triage",
            FakeEngine(output_files=["output.json"]),
            ActionPins(),
            runs_on="ubuntu-latest",
            has_safe_outputs=True,
        )
        names = _step_names(job)
        redact = names.index(REDACT_STEP_NAME)
        for upload in (UPLOAD_SAFE_OUTPUTS_STEP_NAME, UPLOAD_STEP_NAME, UPLOAD_AGENT_ARTIFACTS_STEP_NAME):
            assert names.index(upload) > redact
        assert names.index(CLEANUP_STEP_NAME) > names.index(UPLOAD_STEP_NAME)

    def test_redaction_always_present(self) -> None:
        """The redaction step is emitted even without secrets or outputs."""
        job = build_agent_job("wf", FakeEngine(), ActionPins(), runs_on="ubuntu-latest")
        assert REDACT_STEP_NAME in _step_names(job)
        assert UPLOAD_SAFE_OUTPUTS_STEP_NAME not in _step_names(job)
        assert "outputs" not in job.body

    def test_safe_outputs_upload_and_outputs(self) -> None:
        """Safe outputs add an upload step and a job output."""
        job = build_agent_job(
            "wf", FakeEngine(), ActionPins(), runs_on="ubuntu-latest", has_safe_outputs=True
        )
        assert UPLOAD_SAFE_OUTPUTS_STEP_NAME in _step_names(job)
        assert job.body["outputs"]["output_count"] == "${{ steps.collect_output.outputs.count }}"

    def test_permissions_passthrough(self) -> None:
        """Frontmatter permissions replace the read-only default."""
        default = build_agent_job("wf", FakeEngine(), ActionPins(), runs_on="x")
        assert default.body["permissions"] == {"contents": "read"}

        custom = build_agent_job(
            "wf", FakeEngine(), ActionPins(), runs_on="x", permissions={"issues": "read"}
        )
        assert custom.body["permissions"] == {"issues": "read"}

    def test_workflow_name_in_engine_env(self) -> None:
        """The title is passed to the engine for display."""
        job = build_agent_job(
            "CI/CD: Pipeline", get_engine("copilot"), ActionPins(), runs_on="ubuntu-latest"
        )
        execute = next(s for s in job.body["steps"] if s.get("id") == "agentic_execution")
        assert execute["env"]["GH_AW_WORKFLOW_NAME"] == "CI/CD: Pipeline"

    def test_missing_pin(self) -> None:
        """An action without a pin fails compilation."""
        with pytest.raises(ActionPinError, match="actions/checkout"):
            build_agent_job("wf", FakeEngine(), ActionPins({}), runs_on="x")
