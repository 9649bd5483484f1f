#!/usr/bin/env python3
"""Terminal viewer for chat transcripts."""

import argparse
import os
import sys

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical, VerticalScroll
from textual.message import Message
from textual.widgets import Collapsible, Footer, Label, Static

from chat_directory import extract_title
from transcript_dom import GLYPH_COLLAPSED, GLYPH_EXPANDED
from transcript_interaction import MessageSelection
from transcript_model import HeaderItem, Section
from transcript_parser import parse_transcript


def pair_items(items):
    """Group render items as ``(header, section)`` pairs; either side may be None."""
    pairs = []
    index = 0
    while index < len(items):
        item = items[index]
        if isinstance(item, HeaderItem):
            following = items[index + 1] if index + 1 < len(items) else None
            if isinstance(following, Section) and following.id == item.section_id:
                pairs.append((item, following))
                index += 2
                continue
            pairs.append((item, None))
        else:
            pairs.append((None, item))
        index += 1
    return pairs


class MessageView(Static):
    """One message; clicking it toggles selection."""

    class Clicked(Message):
        def __init__(self, view):
            super().__init__()
            self.view = view

    def __init__(self, message, section_id, index):
        label = Text(message.speaker.label, style="bold")
        body = Text(message.content)
        super().__init__(Text.assemble(label, "\n", body),
                         id=f"{section_id}-message-{index}",
                         classes=f"message {message.speaker.value}")
        self.chat_message = message

    def on_click(self, event):
        event.stop()
        self.post_message(self.Clicked(self))


class WidgetSelection(MessageSelection):
    def mark(self, element, selected):
        element.set_class(selected, "selected")


class TranscriptApp(App):
    """Read-only chat view with collapsible sections."""

    CSS = """
    #title {
        dock: top;
        height: 1;
        background: $primary;
        color: $text;
        content-align: center middle;
        width: 100%;
    }

    .message {
        margin: 1 2;
        padding: 0 1;
        border-left: thick $accent;
    }

    .message.user {
        margin-right: 12;
        border-left: thick $success;
    }

    .message.assistant {
        margin-left: 12;
        border-left: thick $primary;
    }

    .message.selected {
        background: $boost;
        border: round $warning;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("escape", "clear_selection", "Clear selection"),
        Binding("c", "collapse_all", "Collapse all"),
        Binding("e", "expand_all", "Expand all"),
    ]

    def __init__(self, items, title="Chat Transcript"):
        super().__init__()
        self.items = items
        self.title_text = title
        self.selection = WidgetSelection()

    def compose(self) -> ComposeResult:
        yield Label(self.title_text, id="title")
        with VerticalScroll(id="chat"):
            for header, section in pair_items(self.items):
                views = []
                if section is not None:
                    views = [MessageView(m, section.id, i) for i, m in enumerate(section.messages)]
                if header is None:
                    yield Vertical(*views, id=section.id, classes="chat-section")
                else:
                    yield Collapsible(
                        *views,
                        title=header.text,
                        collapsed=False,
                        collapsed_symbol=GLYPH_COLLAPSED,
                        expanded_symbol=GLYPH_EXPANDED,
                        id=header.id,
                        classes=f"chat-section-header level-{header.level}",
                    )
        yield Footer()

    def on_message_view_clicked(self, message):
        self.selection.toggle(message.view)

    def action_clear_selection(self):
        self.selection.clear()

    def action_collapse_all(self):
        for collapsible in self.query(Collapsible):
            collapsible.collapsed = True

    def action_expand_all(self):
        for collapsible in self.query(Collapsible):
            collapsible.collapsed = False


def main():
    """Entry point for TUI."""
    parser = argparse.ArgumentParser(description="View a chat transcript in the terminal")
    parser.add_argument("input", help="input transcript (.md) file")
    args = parser.parse_args()

    try:
        with open(args.input, "r", encoding="utf-8") as f:
            raw = f.read()
    except OSError as e:
        print(f"Cannot read {args.input}: {e}", file=sys.stderr)
        raise SystemExit(1)

    fallback = os.path.splitext(os.path.basename(args.input))[0]
    app = TranscriptApp(parse_transcript(raw), title=extract_title(raw, fallback))
    app.run()


if __name__ == "__main__":
    main()
