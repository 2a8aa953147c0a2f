"""Semantic commit parsing (core domain).

Publish descriptions are short, human-written notes. The only structure we
trust is a first line shaped like ``type(scope)!: rest``; everything else is
treated as free text. Supported shapes:

    feat(buttons): add hover states
    fix: Button, Card
    - tightened focus ring
    - fixed disabled color
    breaking!: drop legacy tokens [priority] [@designers]

Anything that does not match the grammar is reported as invalid, never
raised.
"""

from __future__ import annotations

import re
from typing import List, Mapping, Optional

from designcast.core.config import BREAKING_TYPE, build_commit_types
from designcast.core.models import (
    PRIORITY_CRITICAL,
    PRIORITY_HIGH,
    PRIORITY_NORMAL,
    CommitTypeDescriptor,
    ParsedCommit,
)

INVALID_FORMAT_REASON = "not a valid semantic commit format"

_COMPONENT_LIST_RE = re.compile(r"^[A-Z][a-zA-Z0-9]*(?:\s*,\s*[A-Z][a-zA-Z0-9]*)*$")
_BULLET_MARKER_RE = re.compile(r"^[-•]\s*")
_PRIORITY_MARKER_RE = re.compile(r"\[priority\]", re.IGNORECASE)
_DEV_COMPLETE_MARKER_RE = re.compile(r"\[dev-complete\]", re.IGNORECASE)
_MENTION_RE = re.compile(r"\[@([^\]]+)\]")


def _build_header_pattern(type_names) -> re.Pattern:
    # Longest names first so a type that prefixes another cannot shadow it.
    alternatives = "|".join(re.escape(name) for name in sorted(type_names, key=len, reverse=True))
    return re.compile(rf"^({alternatives})(\([^)]+\))?(!)?:\s*(.+)$", re.IGNORECASE)


def _extract_mentions(text: str) -> tuple[str, ...]:
    mentions: List[str] = []
    for raw in _MENTION_RE.findall(text):
        mention = raw.lower()
        if mention not in mentions:
            mentions.append(mention)
    return tuple(mentions)


def _extract_bullets(lines: List[str]) -> tuple[str, ...]:
    bullets: List[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped.startswith(("-", "•")):
            continue
        point = _BULLET_MARKER_RE.sub("", stripped).strip()
        if point:
            bullets.append(point)
    return tuple(bullets)


class CommitParser:
    """Parse descriptions against a fixed set of commit types."""

    def __init__(
        self,
        commit_types: Optional[Mapping[str, CommitTypeDescriptor]] = None,
        breaking_type: str = BREAKING_TYPE,
    ) -> None:
        self._commit_types = commit_types if commit_types is not None else build_commit_types()
        self._breaking_type = breaking_type
        self._header_re = _build_header_pattern(self._commit_types)

    @property
    def commit_types(self) -> Mapping[str, CommitTypeDescriptor]:
        return self._commit_types

    def parse(self, description: Optional[str]) -> ParsedCommit:
        """Return the structured commit, or an invalid marker with a reason."""

        raw_text = description or ""
        lines = raw_text.strip().split("\n")
        first_line = lines[0].strip()
        if not first_line:
            return ParsedCommit.invalid(raw_text, INVALID_FORMAT_REASON)

        match = self._header_re.match(first_line)
        if not match:
            return ParsedCommit.invalid(raw_text, INVALID_FORMAT_REASON)

        type_token, scope_token, force_flag, rest = match.groups()
        commit_type = type_token.lower()
        rest = rest.strip()

        components: tuple[str, ...] = ()
        bullet_points: tuple[str, ...] = ()
        message = rest
        # A bare list of capitalized names reads as "which components changed";
        # the details then follow as bullet lines.
        if _COMPONENT_LIST_RE.match(rest):
            components = tuple(part.strip() for part in rest.split(",") if part.strip())
            bullet_points = _extract_bullets(lines[1:])
            message = bullet_points[0] if bullet_points else f"Updated {', '.join(components)}"

        if commit_type == self._breaking_type:
            priority = PRIORITY_CRITICAL
        elif _PRIORITY_MARKER_RE.search(raw_text):
            priority = PRIORITY_HIGH
        else:
            priority = PRIORITY_NORMAL

        return ParsedCommit(
            is_valid=True,
            raw_text=raw_text,
            type=commit_type,
            scope=scope_token[1:-1] if scope_token else None,
            forced=bool(force_flag),
            priority=priority,
            components=components,
            bullet_points=bullet_points,
            mentions=_extract_mentions(raw_text),
            dev_complete=bool(_DEV_COMPLETE_MARKER_RE.search(raw_text)),
            message=message,
        )


_DEFAULT_PARSER: Optional[CommitParser] = None


def parse(description: Optional[str]) -> ParsedCommit:
    """Parse with the built-in commit types."""

    global _DEFAULT_PARSER
    if _DEFAULT_PARSER is None:
        _DEFAULT_PARSER = CommitParser()
    return _DEFAULT_PARSER.parse(description)
