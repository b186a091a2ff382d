"""
Name pattern matching for pod, namespace and container filters.

A pattern containing ``*`` is a shell glob, anything else must match
exactly. An empty pattern list is an open filter and matches every name.

Example:
    ```python
    matches_any("web-1", ["web-*", "api"])   # True
    matches_any("db-0", ["web-*", "api"])    # False
    matches_any("db-0", [])                  # True
    ```
"""

import fnmatch
import re
from typing import Iterable, Sequence

WILDCARD = "*"


def has_wildcard(pattern: str) -> bool:
    """Return True if the pattern uses glob semantics."""
    return WILDCARD in pattern


def _brackets_closed(pattern: str) -> bool:
    """Return False if a ``[`` character class is never closed."""
    i, n = 0, len(pattern)
    while i < n:
        if pattern[i] == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            # a leading ']' is a member of the class, not its end
            if j < n and pattern[j] == "]":
                j += 1
            j = pattern.find("]", j)
            if j < 0:
                return False
            i = j
        i += 1
    return True


def name_matches(name: str, pattern: str) -> bool:
    """Match a single name against one exact or glob pattern.

    A malformed glob matches nothing.
    """
    if has_wildcard(pattern):
        if not _brackets_closed(pattern):
            return False
        try:
            return fnmatch.fnmatchcase(name, pattern)
        except re.error:
            return False

    return name == pattern


def matches_any(name: str, patterns: Sequence[str]) -> bool:
    """Return True if no patterns are given or any pattern matches the name."""
    if not patterns:
        return True

    return any(name_matches(name, pattern) for pattern in patterns)


def literal_patterns(patterns: Iterable[str]) -> bool:
    """Return True if every pattern is an exact name (no wildcard)."""
    return all(not has_wildcard(p) for p in patterns)
