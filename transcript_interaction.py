"""Click handling for a rendered chat: section collapse and message selection.

``InteractionController`` applies the same rules as the script embedded in
the standalone page, but to a BeautifulSoup tree, so the behaviour can be
driven and checked from Python.
"""

from transcript_dom import GLYPH_COLLAPSED, GLYPH_EXPANDED
from transcript_model import section_id_for
from viewer_settings import get_logger

logger = get_logger("chat_viewer.interaction")

EXPANDED = "expanded"
COLLAPSED = "collapsed"

INTERACTIVE_TAGS = ("a", "button", "pre")
INTERACTIVE_CLASSES = ("code-header", "section-toggle")
EXEMPT_SPEAKER = "direct-text"


class MessageSelection:
    """At most one selected message at a time.

    Subclasses decide how an element shows its selected state.
    """

    def __init__(self):
        self.selected = None

    def mark(self, element, selected):
        raise NotImplementedError

    def is_marked(self, element):
        return element is self.selected

    def clear(self):
        if self.selected is not None:
            self.mark(self.selected, False)
            self.selected = None

    def toggle(self, element):
        if self.is_marked(element):
            self.mark(element, False)
            self.selected = None
            return False
        self.clear()
        self.mark(element, True)
        self.selected = element
        return True


def _set_class(tag, name, on):
    classes = [c for c in tag.get("class", []) if c != name]
    if on:
        classes.append(name)
    tag["class"] = classes


class DomSelection(MessageSelection):
    def mark(self, element, selected):
        _set_class(element, "selected", selected)

    def is_marked(self, element):
        return "selected" in element.get("class", [])


def _has_class(tag, name):
    return name in (tag.get("class") or [])


def _ancestors(target):
    """The target itself followed by its element ancestors."""
    node = target
    if node is not None and getattr(node, "name", None) is None:
        # text node
        node = node.parent
    while node is not None and getattr(node, "name", None) is not None:
        if node.name == "[document]":
            return
        yield node
        node = node.parent


def closest_message(target):
    for node in _ancestors(target):
        if _has_class(node, "message"):
            return node
    return None


def _is_interactive(target, message):
    for node in _ancestors(target):
        if node.name in INTERACTIVE_TAGS:
            return True
        if any(_has_class(node, name) for name in INTERACTIVE_CLASSES):
            return True
        if node is message:
            return False
    return False


class InteractionController:
    """Owns section visibility and message selection for one document."""

    def __init__(self, soup):
        self.soup = soup
        self.section_visibility = {}
        self.selection = DomSelection()
        self.initialized = False
        self._toggles = []

    def init(self):
        """Bind to the rendered tree. A second call does nothing."""
        if self.initialized:
            logger.debug("Interaction controller already initialized, skipping")
            return False
        for section in self.soup.select(".chat-section"):
            self.section_visibility[section["id"]] = EXPANDED
        self._toggles = self.soup.select(".chat-section-header > .section-toggle")
        self.initialized = True
        logger.debug("Bound %d section toggles", len(self._toggles))
        return True

    @property
    def selected(self):
        return self.selection.selected

    def is_expanded(self, section_id):
        return self.section_visibility.get(section_id, EXPANDED) == EXPANDED

    def toggle(self, button):
        """Flip one header; returns the new state of its section, or None."""
        header = button.parent
        expanded = button.get("aria-expanded") == "true"
        state = self._set_expanded(header, not expanded)
        if expanded:
            self._hide_children(header)
        else:
            self._show_children(header)
        return state

    def _set_expanded(self, header, expanded):
        button = header.find("button", class_="section-toggle", recursive=False)
        button["aria-expanded"] = "true" if expanded else "false"
        button.string = GLYPH_EXPANDED if expanded else GLYPH_COLLAPSED

        section = self.soup.find(id=section_id_for(header.get("id", "")))
        if section is None:
            return None
        state = EXPANDED if expanded else COLLAPSED
        section["style"] = "display: block" if expanded else "display: none"
        self.section_visibility[section["id"]] = state
        return state

    def child_headers(self, header):
        return self.soup.select(f'.chat-section-header[data-parent-id="{header.get("id", "")}"]')

    def is_header_hidden(self, header):
        return _has_class(header, "collapsed")

    def _hide_children(self, header):
        # collapsing hides every descendant header
        for child in self.child_headers(header):
            button = child.find("button", class_="section-toggle", recursive=False)
            if button is not None and button.get("aria-expanded") == "true":
                self._set_expanded(child, False)
            _set_class(child, "collapsed", True)
            self._hide_children(child)

    def _show_children(self, header):
        for child in self.child_headers(header):
            _set_class(child, "collapsed", False)

    def on_body_click(self, target):
        message = closest_message(target)
        if message is None:
            self.selection.clear()
            return
        if _is_interactive(target, message):
            return
        if message.get("data-speaker") == EXEMPT_SPEAKER:
            return
        self.selection.toggle(message)

    def click(self, target):
        """Dispatch a click on ``target`` the way the browser would."""
        if not self.initialized:
            return
        for node in _ancestors(target):
            if any(node is toggle for toggle in self._toggles):
                self.toggle(node)
                break
        self.on_body_click(target)

    def toggle_for(self, section_id):
        """Click the toggle that controls ``section_id``."""
        for button in self._toggles:
            if button.get("aria-controls") == section_id:
                self.click(button)
                return button
        return None
