"""Settings and logging for the chat transcript viewer."""

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
THEMES = ("light", "dark")
ENV_PREFIX = "CHAT_VIEWER_"

_configured = False


class SettingsError(ValueError):
    """Raised when a settings file or override holds an unusable value."""


@dataclass(frozen=True)
class ViewerSettings:
    content_dir: str = "content"
    default_title: str = "Chat Transcript"
    theme: str = "light"
    highlight: bool = True
    escape_html: bool = False
    log_level: str = "WARNING"
    host: str = "localhost"
    port: int = 5000


def get_logger(name, level=None):
    """Return a named logger, configuring the root handler on first use."""
    global _configured
    if not _configured:
        logging.basicConfig(format=LOG_FORMAT, level=logging.WARNING)
        _configured = True
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger


def set_log_level(level):
    """Apply a level name (``"DEBUG"``, ``"warning"``...) to the viewer loggers."""
    get_logger("chat_viewer").setLevel(str(level).upper())


logger = get_logger("chat_viewer")


def debug_log(message, *args):
    logger.debug(message, *args)


def error_log(message, soup=None):
    """Log an error and, when a document is given, show it on the page."""
    logger.error(message)
    if soup is None:
        return None
    target = soup.body or soup
    block = soup.new_tag("div", attrs={"class": "error-message"})
    strong = soup.new_tag("strong")
    strong.string = "Error:"
    block.append(strong)
    block.append(f" {message}")
    target.append(block)
    return block


def _coerce_bool(value):
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _coerce(name, value):
    if name in ("highlight", "escape_html"):
        return _coerce_bool(value)
    if name == "port":
        try:
            return int(value)
        except (TypeError, ValueError):
            raise SettingsError(f"port must be an integer, got {value!r}")
    return str(value)


def _validate(settings):
    if settings.theme not in THEMES:
        raise SettingsError(f"unknown theme {settings.theme!r} (expected one of {', '.join(THEMES)})")
    if not isinstance(logging.getLevelName(settings.log_level.upper()), int):
        raise SettingsError(f"unknown log level {settings.log_level!r}")
    return settings


def load_settings(path=None, environ=None):
    """Build settings from defaults, an optional JSON file and the environment."""
    environ = os.environ if environ is None else environ
    known = {f.name for f in fields(ViewerSettings)}
    values = {}

    if path:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise SettingsError(f"{path}: expected a JSON object")
        for key, value in data.items():
            if key not in known:
                logger.warning("Ignoring unknown setting %r in %s", key, path)
                continue
            values[key] = _coerce(key, value)

    for name in ("content_dir", "theme", "log_level", "highlight", "escape_html", "default_title"):
        env_value = environ.get(ENV_PREFIX + name.upper())
        if env_value is not None:
            values[name] = _coerce(name, env_value)

    return _validate(replace(ViewerSettings(), **values))


def content_root(settings):
    return Path(settings.content_dir).expanduser().resolve()
