"""
session_log.py - Debugging metadata from CLI session logs

The CLI writes one JSON object per line to
``<cli home>/projects/<encoded project path>/<session id>.jsonl``. This module
finds the relevant log and condenses it into a SessionMetadata record that can
be published as step outputs or a job summary.
"""

import json
import os
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .actions import ActionContext
from .errors import InputError
from ..utils.file_handler import find_latest_file

USAGE_FIELDS = (
    "input_tokens",
    "output_tokens",
    "cache_creation_input_tokens",
    "cache_read_input_tokens",
)


@dataclass
class SessionMetadata:
    """Condensed view of one session log"""

    log_file: str
    session_id: Optional[str] = None
    cli_version: Optional[str] = None
    cwd: Optional[str] = None
    git_branch: Optional[str] = None
    model: Optional[str] = None
    models: List[str] = field(default_factory=list)
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    user_messages: int = 0
    assistant_messages: int = 0
    tool_calls: Dict[str, int] = field(default_factory=dict)
    tool_errors: int = 0
    usage: Dict[str, int] = field(default_factory=lambda: {name: 0 for name in USAGE_FIELDS})
    summaries: List[str] = field(default_factory=list)
    skipped_lines: int = 0

    @property
    def total_tool_calls(self) -> int:
        return sum(self.tool_calls.values())

    @property
    def total_tokens(self) -> int:
        return sum(self.usage.values())

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_tool_calls"] = self.total_tool_calls
        data["total_tokens"] = self.total_tokens
        return data


def encode_project_path(project_path: str) -> str:
    """Encode a project path the way the CLI names its log directories"""
    return re.sub(r"[^A-Za-z0-9]", "-", os.path.abspath(project_path))


def project_log_dir(project_path: str, cli_home: str = "~/.claude") -> str:
    """Return the directory holding session logs for ``project_path``"""
    return os.path.join(
        os.path.expanduser(cli_home), "projects", encode_project_path(project_path)
    )


def find_session_log(directory: str, session_id: Optional[str] = None) -> str:
    """
    Locate a session log

    Args:
        directory: Project log directory
        session_id: Specific session to pick; newest log when omitted

    Raises:
        InputError: If no matching log exists
    """
    if session_id:
        path = os.path.join(directory, f"{session_id}.jsonl")
        if not os.path.isfile(path):
            raise InputError(f"Session log not found: {path}")
        return path

    latest = find_latest_file(directory, ".jsonl")
    if latest is None:
        raise InputError(f"No session logs found in {directory}")
    return latest


def _record_content(meta: SessionMetadata, content: Any) -> None:
    if not isinstance(content, list):
        return

    for block in content:
        if not isinstance(block, dict):
            continue
        if block.get("type") == "tool_use":
            name = block.get("name") or "unknown"
            meta.tool_calls[name] = meta.tool_calls.get(name, 0) + 1
        elif block.get("type") == "tool_result" and block.get("is_error"):
            meta.tool_errors += 1


def _record_entry(meta: SessionMetadata, entry: Dict[str, Any]) -> None:
    meta.session_id = meta.session_id or entry.get("sessionId")
    meta.cli_version = entry.get("version") or meta.cli_version
    meta.cwd = meta.cwd or entry.get("cwd")
    meta.git_branch = entry.get("gitBranch") or meta.git_branch

    timestamp = entry.get("timestamp")
    if timestamp:
        meta.started_at = meta.started_at or timestamp
        meta.ended_at = timestamp

    entry_type = entry.get("type")
    if entry_type == "summary" and entry.get("summary"):
        meta.summaries.append(str(entry["summary"]))
        return

    message = entry.get("message")
    if not isinstance(message, dict):
        return

    if entry_type == "user":
        meta.user_messages += 1
    elif entry_type == "assistant":
        meta.assistant_messages += 1
        model = message.get("model")
        if model:
            meta.model = model
            if model not in meta.models:
                meta.models.append(model)

        usage = message.get("usage") or {}
        for name in USAGE_FIELDS:
            value = usage.get(name)
            if isinstance(value, int):
                meta.usage[name] += value

    _record_content(meta, message.get("content"))


def parse_session_log(path: str) -> SessionMetadata:
    """
    Parse a JSON-lines session log

    Blank lines are ignored; lines that are not JSON objects (including
    lines with undecodable bytes) are counted in ``skipped_lines`` rather
    than aborting the parse.

    Raises:
        InputError: If the log cannot be read
    """
    meta = SessionMetadata(log_file=path)

    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.readlines()
    except OSError as e:
        raise InputError(f"Cannot read session log {path}: {e}")

    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            meta.skipped_lines += 1
            continue
        if not isinstance(entry, dict):
            meta.skipped_lines += 1
            continue
        _record_entry(meta, entry)

    return meta


def format_session_summary(meta: SessionMetadata) -> str:
    """Render the metadata as a Markdown table for the job summary"""
    rows = [
        ("Session", meta.session_id or "unknown"),
        ("CLI version", meta.cli_version or "unknown"),
        ("Model", meta.model or "unknown"),
        ("Branch", meta.git_branch or "-"),
        ("Started", meta.started_at or "-"),
        ("Ended", meta.ended_at or "-"),
        ("Messages", f"{meta.user_messages} user / {meta.assistant_messages} assistant"),
        ("Tool calls", f"{meta.total_tool_calls} ({meta.tool_errors} errors)"),
        ("Tokens", str(meta.total_tokens)),
    ]

    lines = ["### Session metadata", "", "| Field | Value |", "|-------|-------|"]
    lines += [f"| {name} | {value} |" for name, value in rows]

    if meta.tool_calls:
        lines += ["", "| Tool | Calls |", "|------|-------|"]
        for name, count in sorted(meta.tool_calls.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"| {name} | {count} |")

    return "\n".join(lines) + "\n"


def publish_session_metadata(
    meta: SessionMetadata, context: ActionContext, summary: bool = False
) -> None:
    """Write the key metadata to step outputs and optionally the job summary"""
    context.set_outputs(
        {
            "session-id": meta.session_id or "",
            "model": meta.model or "",
            "log-file": meta.log_file,
            "tool-calls": str(meta.total_tool_calls),
            "total-tokens": str(meta.total_tokens),
            "metadata": json.dumps(meta.to_dict(), sort_keys=True),
        }
    )

    if summary:
        context.append_summary(format_session_summary(meta))
