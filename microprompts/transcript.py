"""Transcript exporters for a conversation snapshot (JSONL and Markdown)."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

from .messages import Message, MessageState, Role, utc_now_iso

EXPORT_FORMATS = ("jsonl", "md")


def export_jsonl(messages: Iterable[Message], target: Path, *, title: str = "Conversation") -> Path:
    """Write a metadata line followed by one JSON record per message."""
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        handle.write(
            json.dumps(
                {"type": "chat_metadata", "title": title, "exported_at": utc_now_iso()},
                ensure_ascii=False,
            )
            + "\n"
        )
        for message in messages:
            record = {"type": "message", **message.to_dict()}
            handle.write(json.dumps(record, ensure_ascii=False) + "\n")
    return target


def export_markdown(
    messages: Iterable[Message], target: Path, *, title: str = "Conversation"
) -> Path:
    """Write a readable Markdown transcript, including attached suggestions."""
    target.parent.mkdir(parents=True, exist_ok=True)
    lines = [f"# {title}", "", f"Exported: {utc_now_iso()}", ""]
    for message in messages:
        role = "User" if message.role is Role.USER else "Assistant"
        lines.append(f"## {role} ({message.created_at})")
        lines.append("")
        lines.append(message.revealed_text)
        if message.state is MessageState.STOPPED:
            lines.append("")
            lines.append("_(stopped)_")
        if message.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            lines.extend(f"- {prompt}" for prompt in message.suggestions)
        lines.append("")

    target.write_text("\n".join(lines), encoding="utf-8")
    return target


def export_transcript(messages: Iterable[Message], target: Path, fmt: str | None = None) -> Path:
    """Export in *fmt*, or infer it from the suffix; the suffix is corrected to match."""
    if fmt is None:
        fmt = "md" if target.suffix.lower() == ".md" else "jsonl"
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unknown export format {fmt!r}; expected one of {EXPORT_FORMATS}")

    suffix = f".{fmt}"
    if target.suffix.lower() != suffix:
        target = target.with_suffix(suffix)
    if fmt == "md":
        return export_markdown(messages, target)
    return export_jsonl(messages, target)
