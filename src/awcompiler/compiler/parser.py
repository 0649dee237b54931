"""Workflow document parsing.

A workflow is a markdown file with YAML frontmatter:

    ---
    on: issues
    safe-outputs:
      create-issue:
    ---

    # Triage new issues

    Prose instructions for the agent...

parse_workflow_text() turns such a document into an immutable WorkflowSpec;
parse_workflow_file() adds file reading and error context.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import frontmatter
import yaml
from pydantic import BaseModel, ConfigDict, Field

from awcompiler.core.exceptions import ParserError
from awcompiler.core.types import ConfigMap

logger = logging.getLogger(__name__)

DEFAULT_WORKFLOW_NAME = "workflow"

_HEADING_PATTERN = re.compile(r"^#\s+(.+?)\s*#*\s*$", re.MULTILINE)


class WorkflowSpec(BaseModel):
    """Parsed workflow document.

    Attributes:
        frontmatter: Parsed frontmatter key-value document.
        body: Markdown prose following the frontmatter.
        name: Human-readable workflow title (never used as a job id).
        source_path: File the workflow was read from, if any.

    """

    model_config = ConfigDict(frozen=True)

    frontmatter: ConfigMap = Field(default_factory=dict)
    body: str = ""
    name: str = DEFAULT_WORKFLOW_NAME
    source_path: Path | None = None


def extract_workflow_name(
    metadata: ConfigMap,
    body: str,
    source_path: Path | None = None,
) -> str:
    """Determine the workflow title.

    Order: frontmatter `name`, first level-1 markdown heading, file stem.

    Examples:
        >>> extract_workflow_name({}, "# CI/CD: Pipeline (v2.0) @main\\n")
        'CI/CD: Pipeline (v2.0) @main'

    """
    name = metadata.get("name")
    if isinstance(name, str) and name.strip():
        return name.strip()

    match = _HEADING_PATTERN.search(body)
    if match:
        return match.group(1).strip()

    if source_path is not None:
        return source_path.stem
    return DEFAULT_WORKFLOW_NAME


def parse_workflow_text(text: str, source_path: Path | None = None) -> WorkflowSpec:
    """Parse workflow markdown into a WorkflowSpec.

    Args:
        text: Full document text.
        source_path: Originating file, used for naming and error messages.

    Returns:
        WorkflowSpec. A document without frontmatter has an empty one.

    Raises:
        ParserError: If the frontmatter is not valid YAML.

    """
    label = str(source_path) if source_path else "<string>"
    try:
        # Metadata may hold non-string keys, which frontmatter.Post does not accept
        raw_metadata, content = frontmatter.parse(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        location = f" (line {mark.line + 1}, column {mark.column + 1})" if mark else ""
        raise ParserError(
            f"Invalid frontmatter in {label}{location}: {getattr(e, 'problem', e)}\n"
            f"  Suggestion: Check YAML indentation and quoting between the '---' markers"
        ) from e

    # YAML 1.1 reads a bare `on` key as boolean true
    metadata = {("on" if key is True else str(key)): value for key, value in raw_metadata.items()}

    spec = WorkflowSpec(
        frontmatter=metadata,
        body=content,
        name=extract_workflow_name(metadata, content, source_path),
        source_path=source_path,
    )
    logger.debug("Parsed workflow '%s' from %s (%d keys)", spec.name, label, len(metadata))
    return spec


def parse_workflow_file(path: Path) -> WorkflowSpec:
    """Read and parse a workflow markdown file.

    Raises:
        ParserError: If the file is missing, unreadable or malformed.

    """
    if not path.exists():
        raise ParserError(f"Workflow file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ParserError(f"Cannot read workflow file {path}: {e}") from e
    return parse_workflow_text(text, source_path=path)
