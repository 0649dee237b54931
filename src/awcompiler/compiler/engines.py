"""Execution engines running the agent.

An engine contributes the steps that install and run the coding agent, and
declares the files the agent may leave behind. The compiler only consumes
the EngineDescriptor protocol; the built-in engines below cover the engines
a workflow can name in its `engine:` frontmatter key.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from awcompiler.core.exceptions import ConfigError
from awcompiler.core.types import Step

logger = logging.getLogger(__name__)

PROMPT_PATH = "/tmp/gh-aw/aw-prompts/prompt.txt"
AGENT_STDIO_LOG_PATH = "/tmp/gh-aw/agent-stdio.log"


@runtime_checkable
class EngineDescriptor(Protocol):
    """What the compiler needs to know about an engine."""

    @property
    def id(self) -> str:
        """Engine identifier as written in frontmatter."""
        ...

    def declared_output_files(self) -> list[str]:
        """Paths or globs the engine may produce (possibly empty)."""
        ...

    def execution_steps(self, workflow_name: str) -> list[Step]:
        """Steps installing and running the agent."""
        ...


@dataclass(frozen=True)
class BuiltinEngine:
    """Engine driven by a CLI installed from npm.

    Attributes:
        id: Engine identifier.
        display_name: Human-readable name used in step names.
        package: npm package providing the CLI (None for custom engines).
        command: Command line running the agent on the prompt file.
        output_files: Declared output files.

    """

    id: str
    display_name: str
    package: str | None
    command: str
    output_files: tuple[str, ...] = field(default_factory=tuple)

    def declared_output_files(self) -> list[str]:
        return list(self.output_files)

    def execution_steps(self, workflow_name: str) -> list[Step]:
        steps: list[Step] = []
        if self.package:
            steps.append(
                {
                    "name": f"Install {self.display_name}",
                    "run": f"npm install -g {self.package}\n",
                }
            )
        steps.append(
            {
                "name": f"Execute {self.display_name}",
                "id": "agentic_execution",
                "run": f"{self.command} 2>&1 | tee {AGENT_STDIO_LOG_PATH}\n",
                "env": {
                    "GH_AW_PROMPT": PROMPT_PATH,
                    "GH_AW_WORKFLOW_NAME": workflow_name,
                },
            }
        )
        return steps


BUILTIN_ENGINES: dict[str, BuiltinEngine] = {
    engine.id: engine
    for engine in (
        BuiltinEngine(
            id="copilot",
            display_name="GitHub Copilot CLI",
            package="@github/copilot",
            command='copilot --add-dir /tmp/gh-aw/ --prompt "$(cat "$GH_AW_PROMPT")"',
            output_files=("/tmp/gh-aw/sandbox/agent/logs/",),
        ),
        BuiltinEngine(
            id="claude",
            display_name="Claude Code CLI",
            package="@anthropic-ai/claude-code",
            command='claude --print "$(cat "$GH_AW_PROMPT")"',
        ),
        BuiltinEngine(
            id="codex",
            display_name="Codex",
            package="@openai/codex",
            command='codex exec "$(cat "$GH_AW_PROMPT")"',
            output_files=("/tmp/gh-aw/mcp-config/logs/",),
        ),
        BuiltinEngine(
            id="custom",
            display_name="custom engine",
            package=None,
            command='echo "custom engine: steps are defined by the workflow"',
        ),
    )
}


def get_engine(engine_id: str) -> BuiltinEngine:
    """Look up a built-in engine.

    Raises:
        ConfigError: If the id is unknown.

    """
    engine = BUILTIN_ENGINES.get(engine_id)
    if engine is None:
        raise ConfigError(
            f"Unknown engine: '{engine_id}'\n"
            f"  Valid engines: {', '.join(sorted(BUILTIN_ENGINES))}"
        )
    return engine


def engine_id_from_frontmatter(value: Any, default: str) -> str:
    """Extract the engine id from the `engine:` key.

    Accepts `engine: claude` or `engine: {id: claude, ...}`.

    Raises:
        ConfigError: If the value has neither form.

    """
    if value is None:
        return default
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, Mapping):
        engine_id = value.get("id")
        if isinstance(engine_id, str) and engine_id.strip():
            return engine_id.strip()
    raise ConfigError(
        f"Invalid engine configuration: {value!r}\n"
        f"  How to fix: Use 'engine: <id>' or 'engine: {{id: <id>}}'"
    )
