"""Discover chat transcripts under a content directory."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from viewer_settings import get_logger

logger = get_logger("chat_viewer.directory")

TITLE_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
OUTLINE_RE = re.compile(r"^(#{2,4})\s+(.+)$", re.MULTILINE)


@dataclass
class ChatFile:
    path: str
    title: str
    headers: List[tuple] = field(default_factory=list)


@dataclass
class ChatGroup:
    name: str
    files: List[ChatFile] = field(default_factory=list)

    @property
    def display_name(self):
        return self.name.replace("_", " ").replace("-", " ") if self.name else "Chats"


def extract_title(markdown, fallback):
    match = TITLE_RE.search(markdown)
    if match:
        return match.group(1).strip()
    return fallback


def extract_headers(markdown):
    """Return ``(level, text)`` for every level 2-4 heading."""
    return [(len(m.group(1)), m.group(2).strip()) for m in OUTLINE_RE.finditer(markdown)]


def scan_chat_directory(root):
    """Group ``*.md`` files under ``root`` by their parent directory.

    Groups are sorted newest name first (date folders such as ``2024-05-01``
    sort naturally); files inside a group are sorted by name.
    """
    root = Path(root)
    if not root.is_dir():
        logger.warning("Content directory not found: %s", root)
        return []

    groups = {}
    for md_path in sorted(root.rglob("*.md")):
        relative = md_path.relative_to(root)
        try:
            text = md_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping %s: %s", relative, e)
            continue
        group_name = relative.parent.as_posix() if relative.parent != Path(".") else ""
        chat = ChatFile(
            path=relative.as_posix(),
            title=extract_title(text, md_path.stem),
            headers=extract_headers(text),
        )
        groups.setdefault(group_name, ChatGroup(group_name)).files.append(chat)

    ordered = sorted(groups.values(), key=lambda g: g.name, reverse=True)
    logger.debug("Found %d chats in %d groups", sum(len(g.files) for g in ordered), len(ordered))
    return ordered


def flatten(groups):
    return [chat for group in groups for chat in group.files]


def get_navigation(groups, path) -> dict:
    """Previous and next chat around ``path`` in directory order."""
    chats = flatten(groups)
    nav = {"prev": None, "next": None}
    for index, chat in enumerate(chats):
        if chat.path == path:
            if index > 0:
                nav["prev"] = chats[index - 1]
            if index + 1 < len(chats):
                nav["next"] = chats[index + 1]
            break
    return nav


def resolve_chat_path(root, relative) -> Optional[Path]:
    """Resolve ``relative`` inside ``root``; None when it escapes or is not a transcript."""
    if not relative or not relative.endswith(".md"):
        return None
    root = Path(root).resolve()
    candidate = (root / relative).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        return None
    return candidate
