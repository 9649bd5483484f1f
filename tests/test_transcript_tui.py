"""Tests for transcript_tui.py: section pairing and the Textual app."""
import asyncio

from textual.widgets import Collapsible

from transcript_model import HeaderItem, Section
from transcript_parser import parse_transcript
from transcript_tui import MessageView, TranscriptApp, pair_items


def test_pair_items_matches_headers_to_sections():
    items = parse_transcript("<!-- USER -->\nintro\n## A\n## B\n<!-- ASSISTANT -->\nY\n")
    pairs = pair_items(items)
    assert [(h and h.id, s and s.id) for h, s in pairs] == [
        (None, "section-0"),
        ("header-1-1", None),
        ("header-1", "section-1"),
    ]
    assert isinstance(pairs[2][0], HeaderItem)
    assert isinstance(pairs[2][1], Section)


def run_app(raw, steps):
    app = TranscriptApp(parse_transcript(raw), title="Test Chat")

    async def drive():
        async with app.run_test() as pilot:
            await pilot.pause()
            await steps(app, pilot)

    asyncio.run(drive())
    return app


def test_compose_builds_collapsibles_and_messages(scenario_b):
    async def steps(app, pilot):
        collapsibles = list(app.query(Collapsible))
        assert [c.id for c in collapsibles] == ["header-0", "header-1"]
        assert not any(c.collapsed for c in collapsibles)
        views = list(app.query(MessageView))
        assert [v.id for v in views] == ["section-0-message-0", "section-1-message-0"]
        assert views[0].has_class("user")

    run_app(scenario_b, steps)


def test_click_selects_one_message_and_escape_clears():
    raw = "<!-- USER -->\nfirst\n<!-- ASSISTANT -->\nsecond\n"

    async def steps(app, pilot):
        first = app.query_one("#section-0-message-0", MessageView)
        second = app.query_one("#section-0-message-1", MessageView)

        await pilot.click("#section-0-message-0")
        await pilot.pause()
        assert first.has_class("selected")
        assert app.selection.selected is first

        await pilot.click("#section-0-message-1")
        await pilot.pause()
        assert second.has_class("selected")
        assert not first.has_class("selected")

        await pilot.press("escape")
        await pilot.pause()
        assert app.selection.selected is None
        assert not second.has_class("selected")

    run_app(raw, steps)


def test_collapse_and_expand_all(scenario_b):
    async def steps(app, pilot):
        await pilot.press("c")
        await pilot.pause()
        assert all(c.collapsed for c in app.query(Collapsible))
        await pilot.press("e")
        await pilot.pause()
        assert not any(c.collapsed for c in app.query(Collapsible))

    run_app(scenario_b, steps)
