"""Tests for built-in execution engines."""

import pytest

from awcompiler.compiler.engines import (
    AGENT_STDIO_LOG_PATH,
    BUILTIN_ENGINES,
    EngineDescriptor,
    engine_id_from_frontmatter,
    get_engine,
)
from awcompiler.core.exceptions import ConfigError
from awcompiler.core.types import is_scratch_path, job_name_for_directive


class TestBuiltinEngines:
    """Test the built-in engine table."""

    def test_all_satisfy_protocol(self) -> None:
        """Every built-in engine is an EngineDescriptor."""
        for engine in BUILTIN_ENGINES.values():
            assert isinstance(engine, EngineDescriptor)

    def test_execution_logs_to_stdio_file(self) -> None:
        """Execution output is teed into the agent stdio log."""
        steps = get_engine("claude").execution_steps("triage")
        assert [s["name"] for s in steps] == ["Install Claude Code CLI", "Execute Claude Code CLI"]
        assert AGENT_STDIO_LOG_PATH in steps[-1]["run"]

    def test_custom_engine_has_no_install(self) -> None:
        """The custom engine only runs."""
        steps = get_engine("custom").execution_steps("wf")
        assert len(steps) == 1

    def test_declared_outputs_in_scratch(self) -> None:
        """Built-in engines declare only scratch-directory outputs."""
        for engine in BUILTIN_ENGINES.values():
            assert all(is_scratch_path(p) for p in engine.declared_output_files())

    def test_unknown_engine(self) -> None:
        """Unknown ids list the valid engines."""
        with pytest.raises(ConfigError, match="claude, codex, copilot, custom"):
            get_engine("gemini-ultra")


class TestEngineIdFromFrontmatter:
    """Test engine_id_from_frontmatter function."""

    def test_forms(self) -> None:
        """String, mapping and missing forms are accepted."""
        assert engine_id_from_frontmatter("claude", "copilot") == "claude"
        assert engine_id_from_frontmatter({"id": "codex", "model": "x"}, "copilot") == "codex"
        assert engine_id_from_frontmatter(None, "copilot") == "copilot"

    @pytest.mark.parametrize("value", ["", 3, {"model": "x"}, ["claude"]])
    def test_invalid(self, value: object) -> None:
        """Other shapes are configuration errors."""
        with pytest.raises(ConfigError, match="Invalid engine configuration"):
            engine_id_from_frontmatter(value, "copilot")


class TestJobNameForDirective:
    """Test job_name_for_directive function."""

    def test_replaces_dashes(self) -> None:
        """Kebab-case becomes snake_case."""
        assert job_name_for_directive("add-comment") == "add_comment"
