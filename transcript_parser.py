"""Split a chat transcript into headers and speaker-tagged sections.

The transcript is the inner HTML of a page: Markdown headings (levels 2-4)
start a new section, and ``<!-- USER -->`` / ``<!-- ASSISTANT -->`` comments
switch the current speaker. Everything else between markers is message text.
"""

import re
from dataclasses import replace

from transcript_model import HeaderItem, Message, Section, Speaker, Token, TokenKind
from viewer_settings import get_logger

logger = get_logger("chat_viewer.parser")

HEADER_RE = re.compile(r"^(#{2,4})\s+(.+)")

USER_MARKERS = ("<!-- USER -->", "<!-- user -->")
ASSISTANT_MARKERS = ("<!-- ASSISTANT -->", "<!-- assistant -->", "<!-- agent -->")

_SPEAKER_FOR_TOKEN = {
    TokenKind.SPEAKER_USER: Speaker.USER,
    TokenKind.SPEAKER_ASSISTANT: Speaker.ASSISTANT,
}


def classify_line(raw_line):
    """Classify one source line. Rules are checked in order."""
    line = raw_line.strip()
    match = HEADER_RE.match(line)
    if match:
        level = min(max(len(match.group(1)), 2), 4)
        return Token(TokenKind.HEADER, level=level, text=match.group(2).strip())
    if any(marker in line for marker in USER_MARKERS):
        return Token(TokenKind.SPEAKER_USER)
    if any(marker in line for marker in ASSISTANT_MARKERS):
        return Token(TokenKind.SPEAKER_ASSISTANT)
    if "<!--" in line or "-->" in line:
        return Token(TokenKind.COMMENT_NOISE)
    # keep indentation for code blocks
    return Token(TokenKind.CONTENT, text=raw_line.rstrip())


def tokenize_lines(lines):
    for line in lines:
        yield classify_line(line)


def tokenize(raw):
    return tokenize_lines(raw.split("\n"))


class _Segmenter:
    def __init__(self):
        self.speaker = None
        self.current_message = ""
        self.section_messages = []
        self.items = []
        self.section_counter = 0
        self.unpaired = {}
        self.dropped_lines = 0
        # (level, id) of the open headers, outermost first
        self.header_stack = []

    def flush_message(self):
        if self.speaker is not None:
            content = self.current_message.strip()
            if content:
                self.section_messages.append(Message(self.speaker, content))
            else:
                logger.debug("OrphanSpeaker: empty %s turn in section-%d",
                             self.speaker.value, self.section_counter)
        self.current_message = ""

    def flush_section(self):
        if not self.section_messages:
            return
        section_id = f"section-{self.section_counter}"
        self.items.append(Section(section_id, tuple(self.section_messages)))
        self.section_messages = []
        self.section_counter += 1

    def _demote_previous_header(self):
        """Give a header that never got a section its own distinct id."""
        previous = self.items[-1] if self.items else None
        if not isinstance(previous, HeaderItem) or previous.section_id is None:
            return
        count = self.unpaired.get(self.section_counter, 0) + 1
        self.unpaired[self.section_counter] = count
        logger.debug("UnpairedHeader: %r has no section", previous.text)
        demoted = replace(previous, id=f"{previous.id}-{count}", section_id=None)
        self.items[-1] = demoted
        if self.header_stack and self.header_stack[-1][1] == previous.id:
            self.header_stack[-1] = (demoted.level, demoted.id)

    def on_header(self, token):
        self.flush_message()
        self.flush_section()
        self._demote_previous_header()
        while self.header_stack and self.header_stack[-1][0] >= token.level:
            self.header_stack.pop()
        parent_id = self.header_stack[-1][1] if self.header_stack else None
        k = self.section_counter
        header = HeaderItem(f"header-{k}", token.level, token.text, f"section-{k}", parent_id)
        self.items.append(header)
        self.header_stack.append((header.level, header.id))
        self.speaker = None

    def on_speaker(self, speaker):
        self.flush_message()
        self.speaker = speaker

    def on_content(self, token):
        if self.speaker is None:
            if token.text.strip():
                self.dropped_lines += 1
            return
        self.current_message += token.text + "\n"

    def feed(self, token):
        if token.kind is TokenKind.HEADER:
            self.on_header(token)
        elif token.kind in _SPEAKER_FOR_TOKEN:
            self.on_speaker(_SPEAKER_FOR_TOKEN[token.kind])
        elif token.kind is TokenKind.CONTENT:
            self.on_content(token)
        elif token.kind is TokenKind.COMMENT_NOISE:
            pass
        else:
            raise ValueError(f"unhandled token kind {token.kind!r}")

    def finish(self):
        self.flush_message()
        self.flush_section()
        if self.dropped_lines:
            logger.debug("ParseDropped: %d line(s) before the first speaker marker", self.dropped_lines)
        return self.items


def segment(tokens):
    """Fold a token stream into an ordered list of HeaderItem / Section."""
    segmenter = _Segmenter()
    for token in tokens:
        segmenter.feed(token)
    return segmenter.finish()


def parse_transcript(raw):
    return segment(tokenize(raw))
