"""Build the chat DOM from parsed transcript items.

The tree is a BeautifulSoup document. ``render_into`` rewrites a page in
place (the container's transcript is replaced by a title and a
``.chat-container``); ``render_page`` wraps that in a standalone HTML file
with the styles and the click handling script.
"""

import html

from bs4 import BeautifulSoup

from transcript_markdown import render_markdown
from transcript_model import HeaderItem, Section, header_anchor, section_id_for
from transcript_parser import parse_transcript
from viewer_settings import ViewerSettings, error_log, get_logger

logger = get_logger("chat_viewer.dom")

DEFAULT_TITLE = ViewerSettings.default_title
GLYPH_EXPANDED = "▼"
GLYPH_COLLAPSED = "►"


def _tag(soup, name, classes=(), **attrs):
    tag = soup.new_tag(name)
    if classes:
        tag["class"] = list(classes)
    for key, value in attrs.items():
        tag[key.replace("_", "-")] = str(value)
    return tag


def _append_html(soup_tag, markup):
    fragment = BeautifulSoup(markup, "html.parser")
    for child in list(fragment.contents):
        soup_tag.append(child.extract())


def build_header(soup, item, escape=False, taken_ids=None):
    """Header row with its collapse toggle.

    The heading element gets ``id=<anchor>`` (the directory outline's link
    fragment) unless that id is already in ``taken_ids``.
    """
    paired = item.section_id or section_id_for(item.id)
    # the source text comes from serialized HTML
    text = html.unescape(item.text)
    anchor = header_anchor(text)
    header = _tag(soup, "div", ("chat-section-header",), id=item.id,
                  data_level=item.level, data_section_id=paired, data_anchor=anchor)
    if item.parent_id:
        header["data-parent-id"] = item.parent_id
    toggle = _tag(soup, "button", ("section-toggle",), type="button",
                  aria_expanded="true", aria_controls=paired)
    toggle.string = GLYPH_EXPANDED
    content = _tag(soup, "div", ("header-content",))
    if escape:
        heading = soup.new_tag(f"h{item.level}")
        heading.string = text
        content.append(heading)
    else:
        _append_html(content, item.html_text)
        heading = content.find(f"h{item.level}")
    if taken_ids is not None and heading is not None and anchor and anchor not in taken_ids:
        heading["id"] = anchor
        taken_ids.add(anchor)
    header.append(toggle)
    header.append(content)
    return header


def build_section(soup, item, escape=False):
    section = _tag(soup, "div", ("chat-section",), id=item.id)
    for index, message in enumerate(item.messages):
        speaker = message.speaker.value
        element = _tag(soup, "div", ("message", speaker), data_speaker=speaker, data_index=index)
        content = html.unescape(message.content) if escape else message.content
        _append_html(element, render_markdown(content, escape=escape))
        section.append(element)
    return section


def build_chat_container(soup, items, escape=False):
    """Materialize render items under a new, detached ``.chat-container``."""
    container = _tag(soup, "div", ("chat-container",))
    taken_ids = {item.id for item in items}
    for item in items:
        if isinstance(item, HeaderItem):
            container.append(build_header(soup, item, escape=escape, taken_ids=taken_ids))
        elif isinstance(item, Section):
            container.append(build_section(soup, item, escape=escape))
        else:
            raise TypeError(f"not a render item: {item!r}")
    return container


def add_code_headers(soup, root=None):
    """Put a toolbar with a copy button at the top of every code block."""
    root = root or soup
    count = 0
    for block in root.select(".code-block"):
        if block.find("div", class_="code-header", recursive=False) is not None:
            continue
        toolbar = _tag(soup, "div", ("code-header",))
        button = _tag(soup, "button", ("copy-button",), type="button", aria_label="Copy code")
        button.string = "Copy"
        toolbar.append(button)
        block.insert(0, toolbar)
        count += 1
    return count


def find_source_container(soup):
    return soup.select_one(".markdown-body") or soup.body or soup


def document_title(soup):
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


def render_into(soup, title=None, highlighter=None, escape=False, default_title=DEFAULT_TITLE):
    """Replace the transcript in ``soup`` with the rendered chat view.

    Returns the new ``.chat-container`` tag.
    """
    container = find_source_container(soup)
    items = parse_transcript(container.decode_contents())
    chat = build_chat_container(soup, items, escape=escape)

    container.clear()
    heading = soup.new_tag("h1")
    heading.string = title or document_title(soup) or default_title
    container.append(heading)
    container.append(chat)

    add_code_headers(soup, chat)
    if highlighter is not None:
        highlighter.highlight_all(soup)
    logger.debug("Rendered %d items", len(items))
    return chat


def render_document_safely(soup, **kwargs):
    """Run ``render_into`` and report any failure on the page instead of raising."""
    try:
        render_into(soup, **kwargs)
    except Exception as e:
        error_log(f"Error initializing chat view: {e}", soup=soup)
        return False
    return True


class PygmentsHighlighter:
    """Highlight ``pre > code.language-*`` blocks in place with Pygments."""

    def __init__(self, style="default"):
        from pygments.formatters import HtmlFormatter

        self.formatter = HtmlFormatter(nowrap=True, style=style)

    def css(self, scope=".code-block pre"):
        return self.formatter.get_style_defs(scope)

    def highlight_all(self, root):
        from pygments import highlight
        from pygments.lexers import get_lexer_by_name
        from pygments.util import ClassNotFound

        count = 0
        for code in root.select("pre > code"):
            language = next((c[len("language-"):] for c in code.get("class", [])
                             if c.startswith("language-")), None)
            if not language:
                continue
            try:
                lexer = get_lexer_by_name(language, stripall=False, ensurenl=False)
            except ClassNotFound:
                logger.debug("No lexer for %r, leaving block as is", language)
                continue
            highlighted = highlight(code.get_text(), lexer, self.formatter)
            code.clear()
            _append_html(code, highlighted)
            count += 1
        return count


def resolve_highlighter(enabled=True):
    if not enabled:
        return None
    try:
        return PygmentsHighlighter()
    except ImportError:
        logger.warning("Pygments is not installed; code blocks will not be highlighted")
        return None


# ---------------------------------------------------------------------------
# Standalone page
# ---------------------------------------------------------------------------

THEME_LIGHT = """\
  :root {
    --body-bg: #f0f0f0;
    --body-color: #333;
    --user-bg: #dcf8c6;
    --user-border: #a5d6a7;
    --assistant-bg: #e3f2fd;
    --assistant-border: #90caf9;
    --selected-ring: #ff9800;
    --header-color: #444;
    --code-bg: #263238;
    --code-color: #eeffff;
    --tag-bg: #37474f;
    --inline-code-bg: rgba(0,0,0,0.06);
    --quote-border: #bbb;
    --nav-color: #1565c0;
    --error-bg: #ffeeee;
    --error-color: #cc0000;
  }
"""

THEME_DARK = """\
  :root {
    --body-bg: #1a1b26;
    --body-color: #c0caf5;
    --user-bg: #1e2030;
    --user-border: #9ece6a;
    --assistant-bg: #16161e;
    --assistant-border: #7aa2f7;
    --selected-ring: #ff9e64;
    --header-color: #c0caf5;
    --code-bg: #0d0e17;
    --code-color: #a9b1d6;
    --tag-bg: #292e42;
    --inline-code-bg: rgba(255,255,255,0.08);
    --quote-border: #565f89;
    --nav-color: #7aa2f7;
    --error-bg: #2d1b1b;
    --error-color: #f7768e;
  }
"""

THEMES = {"light": THEME_LIGHT, "dark": THEME_DARK}

PAGE_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title></title>
<style>
{{THEME}}
  * { box-sizing: border-box; }
  body {
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
    background: var(--body-bg);
    color: var(--body-color);
    margin: 0;
    padding: 20px;
    line-height: 1.6;
  }
  h1 { text-align: center; margin-bottom: 24px; }
  .chat-container { max-width: 900px; margin: 0 auto; }
  .chat-section-header {
    display: flex;
    align-items: center;
    gap: 8px;
    margin: 18px 0 6px;
    color: var(--header-color);
  }
  .chat-section-header[data-level="3"] { margin-left: 16px; }
  .chat-section-header[data-level="4"] { margin-left: 32px; }
  .header-content h2, .header-content h3, .header-content h4 { margin: 0; }
  .section-toggle {
    background: none;
    border: none;
    color: inherit;
    cursor: pointer;
    font-size: 0.9em;
    width: 1.6em;
  }
  .message {
    margin: 12px 0;
    padding: 14px 18px;
    border-radius: 12px;
    border-left: 4px solid;
    cursor: pointer;
    overflow-wrap: break-word;
  }
  .message.user { background: var(--user-bg); border-left-color: var(--user-border); margin-right: 60px; }
  .message.assistant { background: var(--assistant-bg); border-left-color: var(--assistant-border); margin-left: 60px; }
  .message.selected { box-shadow: 0 0 0 2px var(--selected-ring); }
  .message p { margin: 0.4em 0; }
  .chat-section-header.collapsed { display: none; }
  .code-block { position: relative; margin: 6px 0; }
  .code-header { position: absolute; top: 0; right: 0; }
  .copy-button {
    background: var(--tag-bg);
    color: var(--code-color);
    border: none;
    border-radius: 0 6px 0 6px;
    font-size: 0.75em;
    padding: 2px 8px;
    cursor: pointer;
  }
  .language-tag {
    display: inline-block;
    background: var(--tag-bg);
    color: var(--code-color);
    font-size: 0.75em;
    padding: 1px 8px;
    border-radius: 6px 6px 0 0;
  }
  pre {
    background: var(--code-bg);
    color: var(--code-color);
    padding: 10px 14px;
    border-radius: 0 6px 6px 6px;
    overflow-x: auto;
    margin: 0;
    cursor: text;
  }
  code { font-family: "SFMono-Regular", Consolas, Menlo, monospace; font-size: 0.9em; }
  p code, li code { background: var(--inline-code-bg); padding: 1px 4px; border-radius: 3px; }
  blockquote { border-left: 3px solid var(--quote-border); margin: 6px 0; padding-left: 10px; }
  .chat-nav { display: flex; justify-content: space-between; align-items: center; max-width: 900px; margin: 0 auto 16px; }
  .chat-nav a { color: var(--nav-color); text-decoration: none; }
  .chat-nav a.disabled { visibility: hidden; }
  .error-message { padding: 16px; margin: 16px; background: var(--error-bg); border: 1px solid var(--error-color); color: var(--error-color); }
{{HIGHLIGHT_CSS}}
</style>
</head>
<body>
<div class="markdown-body">
{{TRANSCRIPT}}
</div>
<script>
(() => {
  if (window.chatViewerInitialized) return;
  window.chatViewerInitialized = true;

  const setExpanded = (header, expanded) => {
    const toggle = header.querySelector('.section-toggle');
    toggle.setAttribute('aria-expanded', String(expanded));
    toggle.textContent = expanded ? '\\u25bc' : '\\u25ba';
    const section = document.getElementById(header.id.replace('header-', 'section-'));
    if (section) section.style.display = expanded ? 'block' : 'none';
  };
  const childHeaders = (header) =>
    document.querySelectorAll(`.chat-section-header[data-parent-id="${header.id}"]`);
  // collapsing hides every descendant header; expanding shows direct children only
  const hideChildren = (header) => {
    childHeaders(header).forEach((child) => {
      const toggle = child.querySelector('.section-toggle');
      if (toggle && toggle.getAttribute('aria-expanded') === 'true') setExpanded(child, false);
      child.classList.add('collapsed');
      hideChildren(child);
    });
  };
  const showChildren = (header) => {
    childHeaders(header).forEach((child) => child.classList.remove('collapsed'));
  };

  document.querySelectorAll('.chat-section-header').forEach((header) => {
    const toggle = header.querySelector('.section-toggle');
    if (!toggle) return;
    toggle.addEventListener('click', () => {
      const expanded = toggle.getAttribute('aria-expanded') === 'true';
      setExpanded(header, !expanded);
      if (expanded) hideChildren(header);
      else showChildren(header);
    });
  });

  document.querySelectorAll('.code-header .copy-button').forEach((button) => {
    button.addEventListener('click', () => {
      const code = button.closest('.code-block').querySelector('pre code');
      if (!code || !navigator.clipboard) return;
      navigator.clipboard.writeText(code.textContent).then(() => {
        button.textContent = 'Copied';
        setTimeout(() => { button.textContent = 'Copy'; }, 2000);
      });
    });
  });

  const revealHash = () => {
    const fragment = decodeURIComponent(window.location.hash.slice(1));
    if (!fragment) return;
    const target = document.getElementById(fragment) ||
      document.querySelector(`.chat-section-header[data-anchor="${CSS.escape(fragment)}"]`);
    if (!target) return;
    const header = target.closest('.chat-section-header') || target;
    header.classList.remove('collapsed');
    header.scrollIntoView({ block: 'start' });
  };
  revealHash();
  window.addEventListener('hashchange', revealHash);

  let selectedMessage = null;
  document.body.addEventListener('click', (event) => {
    const messageEl = event.target.closest('.message');
    if (!messageEl) {
      if (selectedMessage) {
        selectedMessage.classList.remove('selected');
        selectedMessage = null;
      }
      return;
    }
    if (event.target.closest('a, button, pre, .code-header, .section-toggle')) return;
    if (messageEl.getAttribute('data-speaker') === 'direct-text') return;

    if (messageEl.classList.contains('selected')) {
      messageEl.classList.remove('selected');
      selectedMessage = null;
    } else {
      if (selectedMessage) selectedMessage.classList.remove('selected');
      messageEl.classList.add('selected');
      selectedMessage = messageEl;
    }
  });
})();
</script>
</body>
</html>
"""


def _nav_link(soup, url, label, css):
    link = _tag(soup, "a", ("nav-link", css), href=url or "#")
    if not url:
        link["class"].append("disabled")
    link.string = label
    return link


def _nav_bar(soup, nav, class_name):
    bar = _tag(soup, "div", ("chat-nav", class_name))
    title = _tag(soup, "a", ("chat-title",), href=nav.get("home") or "/")
    title.string = nav.get("title") or ""
    bar.append(_nav_link(soup, nav.get("prev"), "← previous", "prev-link"))
    bar.append(title)
    bar.append(_nav_link(soup, nav.get("next"), "next →", "next-link"))
    return bar


def render_page(raw, title=None, theme="light", highlight=True, escape=False, nav=None,
                default_title=DEFAULT_TITLE):
    """Render a transcript into a complete HTML document string.

    Args:
        raw: transcript text (Markdown subset with speaker comments)
        title: page and ``<h1>`` title; falls back to ``default_title``
        theme: "light" or "dark"
        highlight: run Pygments over fenced code blocks
        escape: entity-escape message text before rendering
        nav: optional dict with "prev", "next", "title" and "home" URLs/labels
    """
    highlighter = resolve_highlighter(highlight)
    page = (PAGE_TEMPLATE
            .replace("{{THEME}}", THEMES.get(theme, THEME_LIGHT))
            .replace("{{HIGHLIGHT_CSS}}", highlighter.css() if highlighter else ""))
    # user text goes in last so it is never searched for slots
    page = page.replace("{{TRANSCRIPT}}", raw)
    soup = BeautifulSoup(page, "html.parser")
    soup.title.string = title or default_title

    ok = render_document_safely(soup, title=title, highlighter=highlighter,
                                escape=escape, default_title=default_title)
    if ok and nav:
        body = find_source_container(soup)
        body.insert(0, _nav_bar(soup, nav, "header-nav"))
        body.append(_nav_bar(soup, nav, "footer-nav"))
    return str(soup)
