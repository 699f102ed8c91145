"""Addressed patterns: anchor a body pattern behind the robot's name or alias."""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger()

# A global inline-flag group such as "(?i)" is only legal at the very start of
# a pattern, so it is lifted out before the body is embedded in a group.
_LEADING_INLINE_FLAGS = re.compile(r"^\(\?([aiLmsux]+)\)")

_INLINE_FLAG_VALUES = {
    "a": re.ASCII,
    "i": re.IGNORECASE,
    "L": re.LOCALE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "u": re.UNICODE,
    "x": re.VERBOSE,
}


def _split_body(pattern: re.Pattern[str] | str) -> tuple[str, int]:
    if isinstance(pattern, re.Pattern):
        source, flags = pattern.pattern, pattern.flags
    else:
        source, flags = pattern, 0

    m = _LEADING_INLINE_FLAGS.match(source)
    if m:
        for letter in m.group(1):
            flags |= _INLINE_FLAG_VALUES[letter]
        source = source[m.end() :]
    return source, flags


def build_addressed_pattern(
    pattern: re.Pattern[str] | str, name: str, alias: str | None = None
) -> re.Pattern[str]:
    """Build a pattern matching *pattern* only when the robot is addressed.

    Accepts ``@name: body``, ``name, body`` and ``name body`` (and the same
    with *alias*). The body is not anchored at the end.
    """
    body, flags = _split_body(pattern)
    if body.startswith("^"):
        logger.warning(
            "addressed_pattern_anchored",
            pattern=body,
            hint="anchors don't work well with respond, perhaps you want hear",
        )

    escaped_name = re.escape(name)
    if alias:
        escaped_alias = re.escape(alias)
        if len(escaped_name) > len(escaped_alias):
            first, second = escaped_name, escaped_alias
        else:
            first, second = escaped_alias, escaped_name
        prefix = rf"^\s*[@]?(?:{first}[:,]?|{second}[:,]?)"
    else:
        prefix = rf"^\s*[@]?{escaped_name}[:,]?"

    return re.compile(rf"{prefix}\s*(?:{body})", flags)
