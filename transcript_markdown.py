"""Small Markdown subset used inside chat messages.

Rewrites run in a fixed order: fenced code, inline code, strong, emphasis,
list items, blockquotes, paragraphs. Code is swapped out for placeholders
as soon as it is rendered and put back at the very end, so no later rewrite
can touch it.
"""

import re

FENCE_RE = re.compile(r"```(\w*)\n([\s\S]*?)\n```")
INLINE_CODE_RE = re.compile(r"`([^`]+)`")
STRONG_RE = re.compile(r"\*\*([^*]+)\*\*")
EM_RE = re.compile(r"\*([^*]+)\*")
LIST_ITEM_RE = re.compile(r"^- (.*)$")
BLOCKQUOTE_RE = re.compile(r"^(?:>|&gt;) (.*)$")
PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")

BLOCK_TAG_PREFIXES = (
    "<ul", "<ol", "<li", "<blockquote", "<pre", '<div class="code-block"',
    "<table", "<thead", "<tbody", "<tr", "<hr", "<p>", "<p ", "<details",
    "<h1", "<h2", "<h3", "<h4", "<h5", "<h6",
)


def escape_text(text):
    """Escape ``&`` and ``<`` so raw text cannot open tags.

    ``>`` is left alone so blockquote markers still work.
    """
    return text.replace("&", "&amp;").replace("<", "&lt;")


class _Stash:
    def __init__(self):
        self.chunks = []
        self.blocks = set()

    def put(self, html_chunk, block=False):
        self.chunks.append(self.restore(html_chunk))
        index = len(self.chunks) - 1
        if block:
            self.blocks.add(index)
        return f"\x00{index}\x00"

    def is_block_line(self, line):
        """True for a line holding nothing but a fenced code block."""
        match = PLACEHOLDER_RE.fullmatch(line.strip())
        return match is not None and int(match.group(1)) in self.blocks

    def restore(self, text):
        return PLACEHOLDER_RE.sub(lambda m: self.chunks[int(m.group(1))], text)


def _code_block_html(language, body):
    parts = ['<div class="code-block">']
    if language:
        parts.append(f'<div class="language-tag">{language}</div>')
        parts.append(f'<pre><code class="language-{language}">{body}</code></pre>')
    else:
        parts.append(f"<pre><code>{body}</code></pre>")
    parts.append("</div>")
    return "".join(parts)


def _wrap_lists(lines):
    out = []
    run = []
    for line in lines:
        match = LIST_ITEM_RE.match(line)
        if match:
            run.append(f"<li>{match.group(1)}</li>")
            continue
        if run:
            out.append("<ul>" + "".join(run) + "</ul>")
            run = []
        out.append(line)
    if run:
        out.append("<ul>" + "".join(run) + "</ul>")
    return out


def _blockquote(line):
    match = BLOCKQUOTE_RE.match(line)
    if match:
        return f"<blockquote>{match.group(1)}</blockquote>"
    return line


def _paragraph(line, stash):
    stripped = line.lstrip()
    if not stripped.strip():
        return line
    if stripped.startswith(BLOCK_TAG_PREFIXES) or stash.is_block_line(stripped):
        return line
    return f"<p>{line}</p>"


def render_markdown(text, escape=False):
    """Render one message's Markdown-subset text to HTML.

    Args:
        text: raw message content
        escape: entity-escape the text first (for untrusted transcripts)

    Returns:
        HTML string; a pure function of its arguments.
    """
    # NUL delimits placeholders
    text = text.replace("\x00", "")
    if escape:
        text = escape_text(text)
    text = text.strip("\n")
    stash = _Stash()

    text = FENCE_RE.sub(lambda m: stash.put(_code_block_html(m.group(1), m.group(2)), block=True), text)
    text = INLINE_CODE_RE.sub(lambda m: stash.put(f"<code>{m.group(1)}</code>"), text)
    text = STRONG_RE.sub(r"<strong>\1</strong>", text)
    text = EM_RE.sub(r"<em>\1</em>", text)

    lines = _wrap_lists(text.split("\n"))
    lines = [_blockquote(line) for line in lines]
    lines = [_paragraph(line, stash) for line in lines]

    return stash.restore("\n".join(lines))
