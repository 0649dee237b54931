"""Lock file rendering and writing.

The compiled pipeline is rendered as YAML with a generated-file header and
written next to the workflow source (`triage.md` -> `triage.lock.yml`).
Writes go through a temp file in the destination directory followed by
os.replace(), so a failed compilation never leaves a partial lock file.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import yaml

from awcompiler.core.exceptions import CompilerError
from awcompiler.core.types import LOCK_FILE_SUFFIX, ConfigMap

logger = logging.getLogger(__name__)

LOCK_FILE_HEADER = (
    "# This file was automatically generated by awcompiler. DO NOT EDIT.\n"
    "# To update this file, edit the workflow source and recompile.\n"
)


class _LiteralDumper(yaml.SafeDumper):
    """SafeDumper writing multi-line strings as `|` blocks."""


def _represent_str(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    if "\n" in data:
        return dumper.represent_scalar("tag:yaml.org,2002:str", data, style="|")
    return dumper.represent_scalar("tag:yaml.org,2002:str", data)


_LiteralDumper.add_representer(str, _represent_str)


def lock_file_path(source: Path) -> Path:
    """Return the lock file path for a workflow source.

    Examples:
        >>> lock_file_path(Path("wf/triage.md")).as_posix()
        'wf/triage.lock.yml'

    """
    return source.with_name(source.stem + LOCK_FILE_SUFFIX)


def render_lock_file(document: ConfigMap, source: Path | None = None) -> str:
    """Render a pipeline document as lock file text."""
    header = LOCK_FILE_HEADER
    if source is not None:
        header += f"# Source: {source.name}\n"
    body = yaml.dump(
        document,
        Dumper=_LiteralDumper,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
        width=120,
    )
    return header + "\n" + body


def write_lock_file(content: str, destination: Path) -> None:
    """Atomically write lock file content.

    Raises:
        CompilerError: If the file cannot be written.

    """
    temp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            delete=False,
            encoding="utf-8",
            dir=destination.parent,
            prefix=f".{destination.name}.",
            suffix=".tmp",
        ) as temp_file:
            temp_name = temp_file.name
            temp_file.write(content)
        os.replace(temp_name, destination)
    except OSError as e:
        if temp_name is not None and Path(temp_name).exists():
            Path(temp_name).unlink()
        raise CompilerError(f"Failed to write lock file {destination}: {e}") from e

    logger.debug("Wrote lock file %s (%d bytes)", destination, len(content))
