"""Pinned action references.

Generated pipelines reference reusable actions by commit SHA, with the
human-readable version kept as a trailing comment:

    actions/upload-artifact@<sha> # v4.6.2

The compiler never resolves SHAs itself. Pins come from an injected
ActionPinLookup: the built-in DEFAULT_ACTION_PINS table, or an ActionCache
loaded from a repository's actions-lock.json.

Public API:
    ActionPin: One pinned action (repo, version, sha)
    ActionReference: A pin checked against a requested version
    ActionPinLookup: Protocol for pin sources
    ActionPins: Mapping-backed lookup
    LayeredActionPins: First-match lookup over several sources
    ActionCache: actions-lock.json backed lookup
    resolve_action_reference: Pick and check the pin for an action
    format_action_reference: Render a pin as a `uses:` value
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from awcompiler.compiler.versions import compare_versions, is_compatible
from awcompiler.core.exceptions import ActionPinError

logger = logging.getLogger(__name__)

# Name of the cache file, relative to the repository root
CACHE_FILE_PATH = Path(".github") / "aw" / "actions-lock.json"


class ActionPin(BaseModel):
    """A reusable action pinned to a commit.

    Attributes:
        repo: Action path, e.g. "actions/checkout" or
            "github/codeql-action/upload-sarif".
        version: Tag the SHA was resolved from, e.g. "v5.0.0".
        sha: Full commit SHA.

    """

    model_config = ConfigDict(frozen=True)

    repo: str = Field(min_length=1)
    version: str = Field(min_length=1)
    sha: str = Field(min_length=1)


class ActionReference(BaseModel):
    """A pinned action checked against the version a workflow asked for."""

    model_config = ConfigDict(frozen=True)

    pin: ActionPin
    requested_version: str | None = None

    @property
    def compatible(self) -> bool:
        """True if the pin's major version matches the request (or none was made)."""
        if self.requested_version is None:
            return True
        return is_compatible(self.pin.version, self.requested_version)

    @property
    def uses(self) -> str:
        """Value for a step's `uses:` key."""
        return format_action_reference(self.pin)


@runtime_checkable
class ActionPinLookup(Protocol):
    """Source of pinned action references."""

    def get(self, repo: str) -> ActionPin | None:
        """Return the pin for an action repo, or None if unknown."""
        ...


DEFAULT_ACTION_PINS: dict[str, ActionPin] = {
    pin.repo: pin
    for pin in (
        ActionPin(
            repo="actions/checkout",
            version="v5.0.0",
            sha="08c6903cd8c0fde910a37f88322edcfb5dd907a8",
        ),
        ActionPin(
            repo="actions/upload-artifact",
            version="v4.6.2",
            sha="ea165f8d65b6e75b540449e92b4886f43607fa02",
        ),
        ActionPin(
            repo="actions/download-artifact",
            version="v5.0.0",
            sha="634f93cb2916e3fdff6788551b99b062d0335ce0",
        ),
        ActionPin(
            repo="actions/github-script",
            version="v8.0.0",
            sha="ed597411d8f924073f98dfc5c65a23a2325f34cd",
        ),
        ActionPin(
            repo="actions/setup-node",
            version="v6.0.0",
            sha="2028fbc5c25fe9cf00d9f06a71cc4710d4507903",
        ),
    )
}


class ActionPins:
    """Mapping-backed pin lookup."""

    def __init__(self, pins: Mapping[str, ActionPin] | None = None) -> None:
        self._pins = dict(DEFAULT_ACTION_PINS if pins is None else pins)

    def get(self, repo: str) -> ActionPin | None:
        return self._pins.get(repo)

    def __len__(self) -> int:
        return len(self._pins)


class LayeredActionPins:
    """Pin lookup trying several sources in order.

    The first source that knows a repo wins, so a partial actions-lock.json
    can be layered over the built-in table.
    """

    def __init__(self, *lookups: ActionPinLookup) -> None:
        self._lookups = lookups

    def get(self, repo: str) -> ActionPin | None:
        for lookup in self._lookups:
            pin = lookup.get(repo)
            if pin is not None:
                return pin
        return None


def format_action_reference(pin: ActionPin) -> str:
    """Render a pin as `repo@sha # version`.

    Examples:
        >>> format_action_reference(ActionPin(repo="a/b", version="v1", sha="abc"))
        'a/b@abc # v1'

    """
    return f"{pin.repo}@{pin.sha} # {pin.version}"


def resolve_action_reference(
    repo: str,
    lookup: ActionPinLookup,
    requested_version: str | None = None,
) -> ActionReference:
    """Look up the pin for an action and check it against a requested version.

    An incompatible pin is still returned (the pin table is authoritative);
    the mismatch is logged as a warning.

    Args:
        repo: Action repo path.
        lookup: Pin source.
        requested_version: Version the workflow asked for, if any.

    Returns:
        ActionReference for the pin.

    Raises:
        ActionPinError: If the lookup has no pin for repo.

    """
    pin = lookup.get(repo)
    if pin is None:
        raise ActionPinError(
            f"No pinned reference for action '{repo}'\n"
            f"  Why it's needed: generated pipelines only reference actions by SHA\n"
            f"  How to fix: Add '{repo}' to the action pin table or actions-lock.json"
        )

    reference = ActionReference(pin=pin, requested_version=requested_version)
    if not reference.compatible:
        logger.warning(
            "Pinned %s@%s is not compatible with requested version %s; using the pin",
            repo,
            pin.version,
            requested_version,
        )
    return reference


def _cache_key(repo: str, version: str) -> str:
    return f"{repo}@{version}"


def _is_more_precise(v1: str, v2: str) -> bool:
    # "v4.3.0" is more precise than "v4"
    dots1 = v1.count(".")
    dots2 = v2.count(".")
    if dots1 != dots2:
        return dots1 > dots2
    return compare_versions(v1, v2) > 0


class ActionCache:
    """Pins persisted in `.github/aw/actions-lock.json`.

    File format:

        {
          "entries": {
            "actions/checkout@v5": {"repo": "...", "version": "v5", "sha": "..."}
          }
        }

    Attributes:
        path: Location of the cache file.
        entries: Pins keyed by "repo@version".

    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.entries: dict[str, ActionPin] = {}
        self._dirty = False

    @classmethod
    def for_repository(cls, repo_root: Path) -> ActionCache:
        """Create a cache located under a repository root."""
        return cls(repo_root / CACHE_FILE_PATH)

    @property
    def dirty(self) -> bool:
        """True if entries changed since the last load or save."""
        return self._dirty

    def load(self) -> None:
        """Load entries from disk. A missing file yields an empty cache.

        Raises:
            ActionPinError: If the file exists but is not a valid cache.

        """
        if not self.path.exists():
            logger.debug("Action cache %s does not exist, starting empty", self.path)
            self.entries = {}
            self._dirty = False
            return

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            raw_entries = data.get("entries", {}) if isinstance(data, dict) else None
            if not isinstance(raw_entries, dict):
                raise ValueError("'entries' must be an object")
            self.entries = {
                key: ActionPin.model_validate(value) for key, value in raw_entries.items()
            }
        except (OSError, ValueError) as e:
            raise ActionPinError(f"Failed to load action cache {self.path}: {e}") from e

        self._dirty = False
        logger.debug("Loaded action cache with %d entries", len(self.entries))

    def get_sha(self, repo: str, version: str) -> str | None:
        """Return the SHA cached for repo@version."""
        entry = self.entries.get(_cache_key(repo, version))
        return entry.sha if entry else None

    def set(self, repo: str, version: str, sha: str) -> None:
        """Store a pin, marking the cache dirty."""
        key = _cache_key(repo, version)
        for existing_key, entry in self.entries.items():
            if entry.repo == repo and entry.sha == sha and entry.version != version:
                logger.warning(
                    "Adding cache entry %s with SHA %s that already exists as %s",
                    key,
                    sha[:8],
                    existing_key,
                )
        self.entries[key] = ActionPin(repo=repo, version=version, sha=sha)
        self._dirty = True

    def get(self, repo: str) -> ActionPin | None:
        """Return the highest-versioned pin for repo."""
        best: ActionPin | None = None
        for entry in self.entries.values():
            if entry.repo != repo:
                continue
            if best is None or compare_versions(entry.version, best.version) > 0:
                best = entry
        return best

    def _deduplicate(self) -> None:
        groups: dict[tuple[str, str], list[str]] = {}
        for key, entry in self.entries.items():
            groups.setdefault((entry.repo, entry.sha), []).append(key)

        for (repo, _sha), keys in groups.items():
            if len(keys) <= 1:
                continue
            keep = keys[0]
            for key in keys[1:]:
                if _is_more_precise(self.entries[key].version, self.entries[keep].version):
                    keep = key
            for key in keys:
                if key != keep:
                    logger.debug("Deduplicating %s: keeping %s, removing %s", repo, keep, key)
                    del self.entries[key]

    def save(self) -> None:
        """Write entries to disk, sorted by key.

        Skipped when nothing changed. An empty cache removes the file.
        The write is atomic (temp file + rename).
        """
        if not self._dirty:
            logger.debug("Action cache is clean, skipping save")
            return

        if not self.entries:
            if self.path.exists():
                self.path.unlink()
            self._dirty = False
            return

        self._deduplicate()
        self.path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "entries": {
                key: self.entries[key].model_dump(mode="json") for key in sorted(self.entries)
            }
        }
        with tempfile.NamedTemporaryFile(
            mode="w", delete=False, encoding="utf-8", dir=self.path.parent, suffix=".tmp"
        ) as temp_file:
            json.dump(payload, temp_file, indent=2)
            temp_file.write("\n")
        os.replace(temp_file.name, self.path)

        self._dirty = False
        logger.debug("Saved action cache with %d entries to %s", len(self.entries), self.path)
