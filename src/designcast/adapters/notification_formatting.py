"""Shared notification markup helpers.

The core formatter decides what a notification says; this module turns that
content into Telegram markup. Keeping it here prevents drift between
adapters and keeps messages consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from typing import Callable, List, Sequence, Tuple

from designcast.core.models import ContentBlock, MessageContent

DIVIDER = "──────────────"


def escape_md(value: str) -> str:
    for ch in r"*[`":
        value = value.replace(ch, f"\\{ch}")
    return value


def _code_segments(line: str, code: Sequence[str]) -> List[Tuple[str, bool]]:
    """Split ``line`` into (text, is_code) pieces around the code token run.

    The tokens are expected as one comma-separated run, the way component
    names appear in a title. Lines without that run come back unchanged.
    """

    if not code:
        return [(line, False)]
    run = ", ".join(code)
    start = line.find(run)
    if start < 0:
        return [(line, False)]
    segments = [(line[:start], False)]
    for index, token in enumerate(code):
        if index:
            segments.append((", ", False))
        segments.append((token, True))
    segments.append((line[start + len(run):], False))
    return [segment for segment in segments if segment[0]]


def _mark_line(line: str, code: Sequence[str], escape: Callable[[str], str], wrap: Callable[[str], str]) -> str:
    return "".join(wrap(escape(text)) if is_code else escape(text) for text, is_code in _code_segments(line, code))


def _block_markdown(block: ContentBlock) -> List[str]:
    if block.kind == "bullets":
        return [f"• {escape_md(line)}" for line in block.lines]
    if block.kind == "footer":
        return [f"__{escape_md(line)}__" for line in block.lines]
    lines = [_mark_line(line, block.code, escape_md, lambda text: f"`{text}`") for line in block.lines]
    if block.emphasis:
        return [f"**{line}**" for line in lines]
    return lines


def _block_html(block: ContentBlock) -> List[str]:
    if block.kind == "bullets":
        return [f"• {html.escape(line)}" for line in block.lines]
    if block.kind == "footer":
        return [f"<i>{html.escape(line)}</i>" for line in block.lines]
    lines = [_mark_line(line, block.code, html.escape, lambda text: f"<code>{text}</code>") for line in block.lines]
    if block.emphasis:
        return [f"<b>{line}</b>" for line in lines]
    return lines


def _format_markdown(content: MessageContent) -> str:
    """Create the Markdown body used by the Telethon adapter."""

    lines: List[str] = []
    for block in content.blocks:
        if block.kind == "footer":
            lines.append(DIVIDER)
        lines.extend(_block_markdown(block))
        if block.kind == "footer":
            lines.append(f"[{escape_md(content.link_label)}]({content.link_url})")
    return "\n".join(lines)


def _format_html(content: MessageContent) -> str:
    """Create the HTML body used by the Bot API adapter."""

    parts: List[str] = []
    for block in content.blocks:
        if block.kind == "footer":
            parts.append(DIVIDER)
        parts.extend(_block_html(block))
        if block.kind == "footer":
            safe_link = html.escape(content.link_url)
            parts.append(f"<a href=\"{safe_link}\">{html.escape(content.link_label)}</a>")
    return "\n".join(parts)


def format_notification(content: MessageContent, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(content)
    if mode == "html":
        return _format_html(content)
    if mode == "plain":
        return content.fallback_text
    raise ValueError(f"Unsupported notification format: {mode}")
