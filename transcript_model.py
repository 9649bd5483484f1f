"""Data types shared by the transcript parser, renderer and views."""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Union


class TokenKind(Enum):
    HEADER = "header"
    SPEAKER_USER = "speaker-user"
    SPEAKER_ASSISTANT = "speaker-assistant"
    COMMENT_NOISE = "comment-noise"
    CONTENT = "content"


class Speaker(Enum):
    USER = "user"
    ASSISTANT = "assistant"

    @property
    def label(self):
        return self.value.capitalize()


@dataclass(frozen=True)
class Token:
    """One classified source line.

    Attributes:
        kind: classification of the line
        level: heading level (2..4), only for HEADER tokens
        text: heading text for HEADER, the line itself for CONTENT
    """

    kind: TokenKind
    level: int = 0
    text: str = ""


@dataclass(frozen=True)
class Message:
    speaker: Speaker
    content: str


@dataclass(frozen=True)
class Section:
    id: str
    messages: Tuple[Message, ...] = field(default_factory=tuple)

    def speakers(self) -> List[Speaker]:
        return [m.speaker for m in self.messages]


@dataclass(frozen=True)
class HeaderItem:
    """A section heading.

    ``section_id`` names the section that follows this header, or is None
    when another header came first and the header has nothing to collapse.
    ``parent_id`` is the id of the nearest preceding header of a lower level.
    """

    id: str
    level: int
    text: str
    section_id: Optional[str] = None
    parent_id: Optional[str] = None

    @property
    def html_text(self):
        return f"<h{self.level}>{self.text}</h{self.level}>"


RenderItem = Union[HeaderItem, Section]


def section_id_for(header_id):
    return header_id.replace("header-", "section-", 1)


def header_anchor(text):
    """URL fragment for a heading: lowercased, whitespace runs hyphenated."""
    return re.sub(r"\s+", "-", text.strip().lower())
