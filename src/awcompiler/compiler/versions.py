"""Semantic version comparison for pinned action references.

Pure functions deciding whether a pinned action version satisfies the
version a workflow asked for. Every function is total: malformed input
degrades to "invalid" (major version 0, never compatible) instead of raising.

Accepted syntax is `vMAJOR[.MINOR[.PATCH[-PRERELEASE][+BUILD]]]`. The leading
`v` is optional on input and added before parsing. Shorthand forms are
padded with zeros (`v5` compares equal to `v5.0.0`).

Public API:
    compare_versions: Order two versions (1, -1, 0)
    extract_major_version: Major version as int (0 when unparseable)
    is_compatible: Major-version equality of pin and request
"""

import logging
import re
from typing import NamedTuple

logger = logging.getLogger(__name__)

_NUMERIC = r"0|[1-9][0-9]*"
_IDENTIFIERS = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"

_SEMVER_PATTERN = re.compile(
    rf"^v(?P<major>{_NUMERIC})"
    rf"(?:\.(?P<minor>{_NUMERIC})"
    rf"(?:\.(?P<patch>{_NUMERIC})"
    rf"(?:-(?P<prerelease>{_IDENTIFIERS}))?"
    rf"(?:\+(?P<build>{_IDENTIFIERS}))?"
    r")?)?$"
)


class ParsedVersion(NamedTuple):
    """Parsed semantic version (build metadata dropped)."""

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...]


def normalize_version(version: str) -> str:
    """Ensure a version string carries the leading `v` marker.

    Examples:
        >>> normalize_version("5.1.0")
        'v5.1.0'
        >>> normalize_version("v6")
        'v6'

    """
    version = version.strip()
    if version.startswith("v"):
        return version
    return "v" + version


def parse_version(version: str) -> ParsedVersion | None:
    """Parse a version string, returning None when it is not valid semver."""
    match = _SEMVER_PATTERN.match(normalize_version(version))
    if match is None:
        return None

    prerelease = match.group("prerelease")
    identifiers = tuple(prerelease.split(".")) if prerelease else ()
    # Numeric pre-release identifiers must not carry leading zeros
    for ident in identifiers:
        if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
            return None

    return ParsedVersion(
        major=int(match.group("major")),
        minor=int(match.group("minor") or 0),
        patch=int(match.group("patch") or 0),
        prerelease=identifiers,
    )


def _compare_prerelease(a: tuple[str, ...], b: tuple[str, ...]) -> int:
    # A release sorts after any of its pre-releases
    if not a and not b:
        return 0
    if not a:
        return 1
    if not b:
        return -1

    for left, right in zip(a, b, strict=False):
        if left == right:
            continue
        left_numeric = left.isdigit()
        right_numeric = right.isdigit()
        if left_numeric and right_numeric:
            return 1 if int(left) > int(right) else -1
        if left_numeric:
            return -1
        if right_numeric:
            return 1
        return 1 if left > right else -1

    if len(a) == len(b):
        return 0
    return 1 if len(a) > len(b) else -1


def compare_versions(v1: str, v2: str) -> int:
    """Compare two semantic versions.

    Invalid versions sort below every valid version and compare equal
    to each other.

    Args:
        v1: First version (leading `v` optional).
        v2: Second version (leading `v` optional).

    Returns:
        1 if v1 > v2, -1 if v1 < v2, 0 if equal.

    Examples:
        >>> compare_versions("v5.1.0", "5.0.9")
        1
        >>> compare_versions("v4", "v4.0.0")
        0

    """
    p1 = parse_version(v1)
    p2 = parse_version(v2)

    if p1 is None or p2 is None:
        if p1 is None and p2 is None:
            result = 0
        else:
            result = -1 if p1 is None else 1
    else:
        core1 = (p1.major, p1.minor, p1.patch)
        core2 = (p2.major, p2.minor, p2.patch)
        if core1 != core2:
            result = 1 if core1 > core2 else -1
        else:
            result = _compare_prerelease(p1.prerelease, p2.prerelease)

    logger.debug("Version comparison: %s vs %s -> %d", v1, v2, result)
    return result


def _major_component(version: str) -> str:
    parsed = parse_version(version)
    if parsed is None:
        return ""
    return f"v{parsed.major}"


def extract_major_version(version: str) -> int:
    """Extract the major version number from a version string.

    Args:
        version: Version string such as "v5.0.0", "v6" or "5.1.0".

    Returns:
        Major version, or 0 when the string is not a valid version.

    Examples:
        >>> extract_major_version("v6")
        6
        >>> extract_major_version("5.1.0")
        5
        >>> extract_major_version("")
        0

    """
    major = _major_component(version)
    digits = re.match(r"\d+", major[1:]) if major else None
    return int(digits.group(0)) if digits else 0


def is_compatible(pin_version: str, requested_version: str) -> bool:
    """Check if a pinned version satisfies a requested version.

    Compatibility means equal major components; minor and patch are
    ignored. Malformed versions are never compatible.

    Examples:
        >>> is_compatible("v5.0.0", "v5")
        True
        >>> is_compatible("v6.0.0", "v5")
        False
        >>> is_compatible("5.1.0", "5.0.0")
        True

    """
    pin_major = _major_component(pin_version)
    requested_major = _major_component(requested_version)
    compatible = bool(pin_major) and pin_major == requested_major

    logger.debug(
        "Checking version compatibility: pin=%s (major=%s), requested=%s (major=%s) -> %s",
        pin_version,
        pin_major or "invalid",
        requested_version,
        requested_major or "invalid",
        compatible,
    )
    return compatible
