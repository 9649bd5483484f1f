#!/usr/bin/env python3
"""Render a chat transcript (Markdown with speaker comments) to a standalone HTML page."""

import argparse
import os
import sys

from chat_directory import extract_title
from transcript_dom import THEMES, render_page
from transcript_parser import parse_transcript
from transcript_model import Section
from viewer_settings import SettingsError, load_settings, set_log_level


def build_parser():
    parser = argparse.ArgumentParser(description="Render a chat transcript to HTML")
    parser.add_argument("input", help="input transcript (.md) file")
    parser.add_argument("-o", "--output", help="output file path (default: input with .html)")
    parser.add_argument("-t", "--theme", choices=sorted(THEMES), default=None,
                        help="page theme: light or dark")
    parser.add_argument("--title", help="page title (default: first '# ' heading or file name)")
    parser.add_argument("-c", "--config", help="JSON settings file")
    parser.add_argument("--no-highlight", action="store_true", help="skip Pygments highlighting")
    parser.add_argument("--escape-html", action="store_true",
                        help="entity-escape message text (for untrusted transcripts)")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
    except (OSError, ValueError, SettingsError) as e:
        print(f"Invalid settings: {e}", file=sys.stderr)
        return 1
    set_log_level("DEBUG" if args.debug else settings.log_level)

    try:
        with open(args.input, "r", encoding="utf-8") as f:
            raw = f.read()
    except OSError as e:
        print(f"Cannot read {args.input}: {e}", file=sys.stderr)
        return 1

    fallback = os.path.splitext(os.path.basename(args.input))[0]
    title = args.title or extract_title(raw, fallback)

    result = render_page(
        raw,
        title=title,
        theme=args.theme or settings.theme,
        highlight=settings.highlight and not args.no_highlight,
        escape=args.escape_html or settings.escape_html,
        default_title=settings.default_title,
    )

    output_path = args.output or os.path.splitext(args.input)[0] + ".html"
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(result)

    items = parse_transcript(raw)
    sections = [item for item in items if isinstance(item, Section)]
    messages = sum(len(s.messages) for s in sections)
    print(f"Rendered {messages} messages in {len(sections)} sections -> {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
