"""Destination-agnostic notification rendering (core domain).

The formatter only decides *what* a notification says and in which order.
Markup (HTML, Markdown, ...) is applied by the notifier adapters.
"""

from __future__ import annotations

from typing import List, Mapping, Optional

from designcast.core.config import FormatterConfig
from designcast.core.models import (
    PRIORITY_HIGH,
    CommitTypeDescriptor,
    ContentBlock,
    DestinationPolicy,
    MessageContent,
    ParsedCommit,
)

BREAKING_NOTICE = "🚨 BREAKING CHANGE - review before updating 🚨"
PRIORITY_NOTICE = "⚠️ PLEASE REVIEW ⚠️"
DESIGN_STATUS = "🟢 Design"
DEV_DONE_STATUS = "🟢 Development"
DEV_PENDING_STATUS = "🟡 Development"


def resolve_mention(mention: str, mention_groups: Mapping[str, str]) -> str:
    """Return the platform tag for a mention, or a literal ``@token``."""

    return mention_groups.get(mention.lower(), f"@{mention}")


def build_title(
    commit: ParsedCommit,
    descriptor: CommitTypeDescriptor,
    destination: DestinationPolicy,
) -> str:
    title = f"{descriptor.emoji} {descriptor.label}".strip()
    if commit.scope:
        title += f" ({commit.scope})"
    elif commit.components:
        title += f": {', '.join(commit.components)}"
    return f"{title} · {destination.display_name}"


def _attention_line(
    commit: ParsedCommit,
    config: FormatterConfig,
    mention_groups: Mapping[str, str],
) -> Optional[str]:
    if commit.type == config.breaking_type:
        notice = BREAKING_NOTICE
    elif commit.priority == PRIORITY_HIGH:
        notice = PRIORITY_NOTICE
    else:
        return None
    if config.attention_group:
        return f"{resolve_mention(config.attention_group, mention_groups)} - {notice}"
    return notice


def render(
    commit: ParsedCommit,
    destination: DestinationPolicy,
    published_by: str,
    source_id: str,
    commit_types: Mapping[str, CommitTypeDescriptor],
    mention_groups: Mapping[str, str],
    config: Optional[FormatterConfig] = None,
) -> MessageContent:
    """Render a valid parsed commit into channel-neutral content blocks.

    Block order: mentions, attention, title, body, footer. The mentions
    block is omitted when no mentions were parsed and the attention block
    only appears for breaking or high-priority commits.
    """

    if not commit.is_valid:
        raise ValueError("Cannot render an invalid commit")

    config = config or FormatterConfig()
    descriptor = commit_types[commit.type]
    title = build_title(commit, descriptor, destination)

    blocks: List[ContentBlock] = []
    if commit.mentions:
        resolved = " ".join(resolve_mention(mention, mention_groups) for mention in commit.mentions)
        blocks.append(ContentBlock(kind="mentions", lines=(resolved,)))

    attention = _attention_line(commit, config, mention_groups)
    if attention:
        blocks.append(ContentBlock(kind="attention", lines=(attention,), emphasis=True))

    # Components only appear in the title when there is no scope.
    code = () if commit.scope else tuple(commit.components)
    blocks.append(ContentBlock(kind="title", lines=(title,), emphasis=True, code=code))

    if commit.bullet_points:
        blocks.append(ContentBlock(kind="bullets", lines=commit.bullet_points))
    else:
        blocks.append(ContentBlock(kind="message", lines=(commit.message,), emphasis=True))

    dev_status = DEV_DONE_STATUS if commit.dev_complete else DEV_PENDING_STATUS
    blocks.append(
        ContentBlock(
            kind="footer",
            lines=(
                f"Published by {published_by} in {destination.display_name}",
                f"{DESIGN_STATUS} {dev_status}",
            ),
        )
    )

    return MessageContent(
        title=title,
        blocks=tuple(blocks),
        fallback_text=f"{descriptor.emoji} {descriptor.label}: {commit.message}".strip(),
        link_url=config.source_url_template.format(source_id=source_id),
        link_label=config.link_label,
        priority=commit.priority,
        color=descriptor.color,
    )
