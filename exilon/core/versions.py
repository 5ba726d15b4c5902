"""Version string comparison for extension and CMS releases."""

import re
from typing import List, Tuple

_SPLIT = re.compile(r"[.+]")


def normalize_version(version: str) -> str:
    """Strip whitespace and a leading 'v' (GitHub tags are usually 'v1.2.3')."""
    version = (version or "").strip()
    if version[:1] in ("v", "V"):
        version = version[1:]
    return version


def _parse(version: str) -> Tuple[List[int], str]:
    """
    Split a version into numeric release parts and a pre-release suffix.

    "1.2.0-beta.1" -> ([1, 2, 0], "beta.1")
    """
    version = normalize_version(version)
    release, _, prerelease = version.partition("-")

    parts = []
    for chunk in _SPLIT.split(release):
        match = re.match(r"\d+", chunk)
        parts.append(int(match.group()) if match else 0)

    return parts, prerelease


def compare_versions(v1: str, v2: str) -> int:
    """
    Compare two version strings.

    Args:
        v1: First version
        v2: Second version

    Returns:
        -1 if v1 < v2, 0 if v1 == v2, 1 if v1 > v2
    """
    parts1, pre1 = _parse(v1)
    parts2, pre2 = _parse(v2)

    # Pad shorter version with zeros
    max_len = max(len(parts1), len(parts2))
    parts1.extend([0] * (max_len - len(parts1)))
    parts2.extend([0] * (max_len - len(parts2)))

    for p1, p2 in zip(parts1, parts2):
        if p1 < p2:
            return -1
        elif p1 > p2:
            return 1

    # A pre-release sorts before the final release
    if pre1 == pre2:
        return 0
    if not pre1:
        return 1
    if not pre2:
        return -1
    return _compare_prerelease(pre1, pre2)


def _compare_prerelease(pre1: str, pre2: str) -> int:
    """
    Compare pre-release suffixes identifier by identifier.

    Numeric identifiers compare as numbers ("rc.10" > "rc.2") and sort
    before alphanumeric ones. A shorter suffix sorts first when all
    shared identifiers are equal.
    """
    ids1 = pre1.split(".")
    ids2 = pre2.split(".")

    for a, b in zip(ids1, ids2):
        if a == b:
            continue
        if a.isdigit() and b.isdigit():
            return -1 if int(a) < int(b) else 1
        if a.isdigit():
            return -1
        if b.isdigit():
            return 1
        return -1 if a < b else 1

    if len(ids1) == len(ids2):
        return 0
    return -1 if len(ids1) < len(ids2) else 1


def is_newer(latest: str, current: str) -> bool:
    """True if `latest` is strictly newer than `current`."""
    return compare_versions(latest, current) > 0
