"""Tests for the compilation entry points.

Tests cover:
- Agent job id independent of the workflow title
- Safe-output jobs depending on the agent job
- Frontmatter passthrough (on, permissions, runs-on, engine)
- Fatal errors (invalid targets, unknown engines)
- Lock file writing and batch compilation
"""

from pathlib import Path

import pytest
import yaml

from awcompiler.compiler.actions import DEFAULT_ACTION_PINS, ActionCache
from awcompiler.compiler.core import (
    DEFAULT_TRIGGER,
    CompiledPipeline,
    compile_file,
    compile_files,
    compile_workflow,
)
from awcompiler.compiler.engines import get_engine
from awcompiler.compiler.parser import parse_workflow_text
from awcompiler.core.config import CompilerConfig
from awcompiler.core.exceptions import CompilerError, ConfigError, SafeOutputValidationError
from awcompiler.core.types import AGENT_JOB_NAME

PUNCTUATED_WORKFLOW = """---
on:
  push:
    branches: [main]
safe-outputs:
  create-issue:
  add-comment:
    target: "*"
---

# CI/CD: Pipeline (v2.0) @main

Check the build and report.
"""


class TestCompileWorkflow:
    """Test compile_workflow function."""

    def test_agent_job_id_fixed(self, compiler_config: CompilerConfig) -> None:
        """The title never becomes a job id."""
        pipeline = compile_workflow(parse_workflow_text(PUNCTUATED_WORKFLOW), config=compiler_config)

        assert isinstance(pipeline, CompiledPipeline)
        assert pipeline.name == "CI/CD: Pipeline (v2.0) @main"
        assert pipeline.job_names()[0] == AGENT_JOB_NAME
        for name in pipeline.job_names():
            assert not any(char in name for char in "/:@() ")

    def test_safe_output_jobs_need_agent(self, compiler_config: CompilerConfig) -> None:
        """Every safe-output job lists `agent` in needs."""
        pipeline = compile_workflow(parse_workflow_text(PUNCTUATED_WORKFLOW), config=compiler_config)

        assert pipeline.job_names() == [AGENT_JOB_NAME, "create_issue", "add_comment"]
        for job in pipeline.jobs[1:]:
            assert AGENT_JOB_NAME in job.needs
        assert pipeline.get_job("add_comment").needs == [AGENT_JOB_NAME, "create_issue"]

    def test_frontmatter_passthrough(self, compiler_config: CompilerConfig) -> None:
        """on, permissions and runs-on are carried over."""
        spec = parse_workflow_text(
            "---\non: issues\nruns-on: self-hosted\npermissions:\n  issues: read\n---\n# T\n"
        )
        pipeline = compile_workflow(spec, config=compiler_config)
        agent = pipeline.get_job(AGENT_JOB_NAME)

        assert pipeline.on == "issues"
        assert agent.body["runs-on"] == "self-hosted"
        assert agent.body["permissions"] == {"issues": "read"}

    def test_defaults_from_config(self) -> None:
        """Runner and trigger fall back to configured defaults."""
        config = CompilerConfig(runs_on="big-runner", safe_outputs_runs_on="small-runner")
        spec = parse_workflow_text("---\nsafe-outputs:\n  noop:\n---\n# T\n")

        pipeline = compile_workflow(spec, config=config)

        assert pipeline.on == DEFAULT_TRIGGER
        assert pipeline.get_job(AGENT_JOB_NAME).body["runs-on"] == "big-runner"
        assert pipeline.get_job("noop").body["runs-on"] == "small-runner"

    def test_engine_selection(self, compiler_config: CompilerConfig) -> None:
        """The frontmatter engine drives the execution steps."""
        spec = parse_workflow_text("---\nengine:\n  id: codex\n---\n# T\n")
        pipeline = compile_workflow(spec, config=compiler_config)

        names = [s["name"] for s in pipeline.get_job(AGENT_JOB_NAME).body["steps"]]
        assert "Execute Codex" in names
        assert "Upload engine output files" in names

    def test_engine_override(self, compiler_config: CompilerConfig) -> None:
        """An explicit engine argument beats frontmatter."""
        spec = parse_workflow_text("---\nengine: codex\n---\n# T\n")
        pipeline = compile_workflow(spec, engine=get_engine("claude"), config=compiler_config)

        names = [s["name"] for s in pipeline.get_job(AGENT_JOB_NAME).body["steps"]]
        assert "Execute Claude Code CLI" in names

    def test_unknown_engine(self, compiler_config: CompilerConfig) -> None:
        """Unknown engines are configuration errors."""
        spec = parse_workflow_text("---\nengine: gpt-pilot\n---\n# T\n")
        with pytest.raises(ConfigError, match="Unknown engine"):
            compile_workflow(spec, config=compiler_config)

    def test_invalid_target_fails(self, compiler_config: CompilerConfig) -> None:
        """An invalid target aborts compilation."""
        spec = parse_workflow_text("---\nsafe-outputs:\n  close-issue:\n    target: event\n---\n")
        with pytest.raises(SafeOutputValidationError, match="invalid target value"):
            compile_workflow(spec, config=compiler_config)

    def test_no_safe_outputs(self, compiler_config: CompilerConfig) -> None:
        """A workflow without safe outputs has only the agent job."""
        pipeline = compile_workflow(parse_workflow_text("# Solo\n"), config=compiler_config)
        assert pipeline.job_names() == [AGENT_JOB_NAME]

    def test_to_dict(self, compiler_config: CompilerConfig) -> None:
        """The document has name, on and jobs keyed by id."""
        pipeline = compile_workflow(parse_workflow_text(PUNCTUATED_WORKFLOW), config=compiler_config)
        document = pipeline.to_dict()

        assert list(document) == ["name", "on", "jobs"]
        assert document["jobs"]["create_issue"]["needs"] == AGENT_JOB_NAME


class TestCompileFile:
    """Test compile_file function."""

    def test_writes_lock_file(self, write_workflow, compiler_config: CompilerConfig) -> None:
        """The lock file references the agent job by id."""
        source = write_workflow("ci.md", PUNCTUATED_WORKFLOW)

        lock_file = compile_file(source, config=compiler_config)

        assert lock_file == source.with_name("ci.lock.yml")
        text = lock_file.read_text(encoding="utf-8")
        assert "  agent:" in text
        assert "needs: agent" in text
        loaded = yaml.safe_load(text)
        assert loaded["name"] == "CI/CD: Pipeline (v2.0) @main"
        assert loaded["on"] == {"push": {"branches": ["main"]}}

    def test_failed_compilation_writes_nothing(
        self, write_workflow, compiler_config: CompilerConfig
    ) -> None:
        """No lock file appears when compilation fails."""
        source = write_workflow("bad.md", "---\nengine: nope\n---\n# Bad\n")

        with pytest.raises(ConfigError):
            compile_file(source, config=compiler_config)

        assert not source.with_name("bad.lock.yml").exists()

    def test_action_cache_pins(self, write_workflow, tmp_path: Path) -> None:
        """Pins from the configured cache are used."""
        cache = ActionCache(tmp_path / "actions-lock.json")
        for repo, version in (
            ("actions/checkout", "v5.0.1"),
            ("actions/upload-artifact", "v4.6.2"),
            ("actions/download-artifact", "v5.0.0"),
            ("actions/github-script", "v8.0.0"),
        ):
            cache.set(repo, version, repo.split("/")[1][:4] * 10)
        cache.save()
        config = CompilerConfig(action_cache_path=cache.path)
        source = write_workflow("wf.md", "# Cached\n")

        text = compile_file(source, config=config).read_text(encoding="utf-8")

        assert "actions/checkout@" + "chec" * 10 + " # v5.0.1" in text

    def test_partial_action_cache_falls_back(self, write_workflow, tmp_path: Path) -> None:
        """Actions missing from the cache keep their built-in pins."""
        cache = ActionCache(tmp_path / "actions-lock.json")
        cache.set("actions/checkout", "v5.0.1", "c" * 40)
        cache.save()
        config = CompilerConfig(action_cache_path=cache.path)
        source = write_workflow("wf.md", "# Partial\n")

        text = compile_file(source, config=config).read_text(encoding="utf-8")

        upload = DEFAULT_ACTION_PINS["actions/upload-artifact"]
        assert "actions/checkout@" + "c" * 40 + " # v5.0.1" in text
        assert f"actions/upload-artifact@{upload.sha} # {upload.version}" in text


class TestCompileFiles:
    """Test compile_files function."""

    def test_compiles_all(self, write_workflow, compiler_config: CompilerConfig) -> None:
        """Independent files compile in input order; failures are isolated."""
        good = write_workflow("good.md", "# Good\n")
        bad = write_workflow("bad.md", "---\nengine: nope\n---\n")
        other = write_workflow("sub/other.md", PUNCTUATED_WORKFLOW)

        results = compile_files([good, bad, other], config=compiler_config, max_workers=2)

        assert [r.source for r in results] == [good, bad, other]
        assert [r.ok for r in results] == [True, False, True]
        assert isinstance(results[1].error, ConfigError)
        assert other.with_name("other.lock.yml").exists()

    def test_colliding_outputs(self, write_workflow, compiler_config: CompilerConfig) -> None:
        """Two inputs mapping to one lock file are rejected up front."""
        source = write_workflow("same.md", "# Same\n")

        with pytest.raises(CompilerError, match="both compile to"):
            compile_files([source, source], config=compiler_config)

        assert not source.with_name("same.lock.yml").exists()

    def test_non_ascii_target_isolated(
        self, write_workflow, compiler_config: CompilerConfig
    ) -> None:
        """A Unicode-digit target fails only its own file."""
        good = write_workflow("good.md", "# Good\n")
        bad = write_workflow(
            "bad.md", '---\nsafe-outputs:\n  close-issue:\n    target: "²"\n---\n'
        )

        results = compile_files([good, bad], config=compiler_config)

        assert [r.ok for r in results] == [True, False]
        assert isinstance(results[1].error, SafeOutputValidationError)
        assert not bad.with_name("bad.lock.yml").exists()
