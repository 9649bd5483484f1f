#!/usr/bin/env python3
"""Web UI for browsing chat transcripts.

``/`` shows the directory of chats; ``/?path=<file.md>`` shows one chat.
"""

import html
from urllib.parse import quote

from flask import Flask, abort, jsonify, render_template_string, request, url_for

from chat_directory import get_navigation, resolve_chat_path, scan_chat_directory
from transcript_dom import THEMES, render_page
from transcript_model import header_anchor
from viewer_settings import content_root, error_log, get_logger, load_settings, set_log_level

logger = get_logger("chat_viewer.web")

DIRECTORY_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>{{ title }}</title>
<style>
{{ theme_css|safe }}
  body { font-family: -apple-system, "Segoe UI", Roboto, sans-serif; background: var(--body-bg);
         color: var(--body-color); max-width: 900px; margin: 0 auto; padding: 20px; }
  .directory-section { margin: 8px 0 8px 12px; }
  .directory-header-wrapper { font-weight: bold; margin: 12px 0 4px; }
  .directory-content-container a { color: var(--nav-color); text-decoration: none; }
  .directory-outline { list-style: none; margin: 2px 0 8px; padding-left: 14px; font-size: 0.9em; }
  .directory-outline .level-3 { padding-left: 14px; }
  .directory-outline .level-4 { padding-left: 28px; }
  .directory-info-message { text-align: center; opacity: 0.7; }
</style>
</head>
<body>
<h1>{{ title }}</h1>
<div id="post-container" class="directory-container">
{% if not groups %}
  <div class="directory-info-message">
    <p>No conversations found.</p>
    <p>Add markdown files to the content directory to get started.</p>
  </div>
{% endif %}
{% for group in groups %}
  <div class="directory-section">
    <div class="directory-header-wrapper">{{ group.display_name }}</div>
    <div class="directory-content-container">
    {% for chat in group.files %}
      <div class="directory-section">
        <a class="directory-chat-link" href="{{ chat_url(chat.path) }}">{{ chat.title }}</a>
        {% if chat.headers %}
        <ul class="directory-outline">
          {% for level, text in chat.headers %}
          <li class="level-{{ level }}"><a href="{{ chat_url(chat.path) }}#{{ anchor(text) }}">{{ text }}</a></li>
          {% endfor %}
        </ul>
        {% endif %}
      </div>
    {% endfor %}
    </div>
  </div>
{% endfor %}
</div>
</body>
</html>
"""

ERROR_TEMPLATE = """\
<div class="error-message" style="text-align: center; padding: 20px;">
  <p><strong>Error loading chat:</strong> {message}</p>
  <p>Please check that the file exists and is accessible.</p>
  <p><a href="{home}">Return to Home</a></p>
</div>
"""


def create_app(settings=None):
    settings = settings or load_settings()
    set_log_level(settings.log_level)

    app = Flask(__name__)
    app.config["VIEWER_SETTINGS"] = settings
    app.config["CONTENT_ROOT"] = content_root(settings)

    def chat_url(path):
        return f"{url_for('index')}?path={quote(path)}"

    def theme_for_request():
        theme = request.args.get("theme", settings.theme)
        return theme if theme in THEMES else settings.theme

    def directory_view():
        groups = scan_chat_directory(app.config["CONTENT_ROOT"])
        return render_template_string(
            DIRECTORY_TEMPLATE,
            title=settings.default_title,
            theme_css=THEMES[theme_for_request()],
            groups=groups,
            chat_url=chat_url,
            anchor=header_anchor,
        )

    def chat_view(path):
        chat_path = resolve_chat_path(app.config["CONTENT_ROOT"], path)
        if chat_path is None or not chat_path.is_file():
            abort(404)

        groups = scan_chat_directory(app.config["CONTENT_ROOT"])
        nav = get_navigation(groups, path)
        chat = next((c for g in groups for c in g.files if c.path == path), None)
        title = chat.title if chat else chat_path.stem

        try:
            raw = chat_path.read_text(encoding="utf-8")
            return render_page(
                raw,
                title=title,
                theme=theme_for_request(),
                highlight=settings.highlight,
                escape=settings.escape_html,
                default_title=settings.default_title,
                nav={
                    "title": title,
                    "home": url_for("index"),
                    "prev": chat_url(nav["prev"].path) if nav["prev"] else None,
                    "next": chat_url(nav["next"].path) if nav["next"] else None,
                },
            )
        except (OSError, UnicodeDecodeError) as e:
            error_log(f"Error loading chat {path}: {e}")
            return ERROR_TEMPLATE.format(message=html.escape(str(e)), home=url_for("index")), 500

    @app.route("/")
    def index():
        """Directory view, or a single chat when ``path`` is given."""
        path = request.args.get("path")
        if path:
            return chat_view(path)
        return directory_view()

    @app.route("/api/chats")
    def list_chats():
        groups = scan_chat_directory(app.config["CONTENT_ROOT"])
        return jsonify({
            "groups": [
                {
                    "name": group.name,
                    "display_name": group.display_name,
                    "files": [
                        {
                            "path": chat.path,
                            "title": chat.title,
                            "url": chat_url(chat.path),
                            "headers": [{"level": level, "text": text} for level, text in chat.headers],
                        }
                        for chat in group.files
                    ],
                }
                for group in groups
            ]
        })

    return app


if __name__ == "__main__":
    viewer_settings = load_settings()
    print(f"Starting Web UI on http://{viewer_settings.host}:{viewer_settings.port}")
    create_app(viewer_settings).run(debug=True, host=viewer_settings.host, port=viewer_settings.port)
