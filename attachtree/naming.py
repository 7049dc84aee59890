"""Turn outline node titles into mirror directory names.

The mirror tree names each entry after the node's display title. Titles may
carry characters that are unsafe in a path component, trailing statistics
cookies such as ``[3/5]`` or ``[40%]``, and link markup of the form
``[[target][label]]``. ``sanitize_title`` reduces all of that to a plain
fragment; an empty result means the node is not mirrored at all.
"""
from __future__ import annotations

import re

_UNSAFE_CHARS_PATTERN = re.compile(r"[/<>|:&]")
_TRAILING_STATISTICS_PATTERN = re.compile(r"\s\[[^\[\]]*\]$")
_LINK_PATTERN = re.compile(r"\[\[([^\[\]]+)\](?:\[([^\[\]]*)\])?\]")
_RESERVED_NAMES = {".", ".."}


def _link_text(match: re.Match) -> str:
    label = match.group(2)
    return label if label else match.group(1)


def sanitize_title(title: str) -> str:
    """Return a filesystem-safe name for ``title``, or ``""`` when nothing usable remains."""
    value = _UNSAFE_CHARS_PATTERN.sub("-", title or "")
    value = _TRAILING_STATISTICS_PATTERN.sub("", value)
    value = _LINK_PATTERN.sub(_link_text, value)
    value = value.strip()
    if value in _RESERVED_NAMES:
        return ""
    return value


def has_mirror_name(title: str) -> bool:
    return bool(sanitize_title(title))
