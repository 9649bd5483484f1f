"""Tests for viewer_settings.py: settings loading and the logging facade."""
import json
import logging

import pytest
from bs4 import BeautifulSoup

from viewer_settings import (
    SettingsError,
    ViewerSettings,
    error_log,
    get_logger,
    load_settings,
    set_log_level,
)


def test_defaults_without_file_or_env():
    assert load_settings(environ={}) == ViewerSettings()


def test_json_file_and_unknown_keys(tmp_path, caplog):
    path = tmp_path / "viewer.json"
    path.write_text(json.dumps({"theme": "dark", "port": "8080", "colour": "red"}), encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="chat_viewer"):
        settings = load_settings(path, environ={})
    assert settings.theme == "dark"
    assert settings.port == 8080
    assert "colour" in caplog.text


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "viewer.json"
    path.write_text(json.dumps({"content_dir": "from-file", "highlight": True}), encoding="utf-8")
    env = {"CHAT_VIEWER_CONTENT_DIR": "from-env", "CHAT_VIEWER_HIGHLIGHT": "no",
           "CHAT_VIEWER_ESCAPE_HTML": "1"}
    settings = load_settings(path, environ=env)
    assert settings.content_dir == "from-env"
    assert settings.highlight is False
    assert settings.escape_html is True


def test_invalid_values_raise():
    with pytest.raises(SettingsError):
        load_settings(environ={"CHAT_VIEWER_THEME": "purple"})
    with pytest.raises(SettingsError):
        load_settings(environ={"CHAT_VIEWER_LOG_LEVEL": "chatty"})


def test_non_object_file_raises(tmp_path):
    path = tmp_path / "viewer.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(SettingsError):
        load_settings(path, environ={})


def test_set_log_level_applies_to_child_loggers():
    set_log_level("debug")
    try:
        assert get_logger("chat_viewer.parser").getEffectiveLevel() == logging.DEBUG
    finally:
        set_log_level("WARNING")


def test_error_log_appends_message_to_document(caplog):
    soup = BeautifulSoup("<html><body></body></html>", "html.parser")
    with caplog.at_level(logging.ERROR, logger="chat_viewer"):
        block = error_log("it broke", soup=soup)
    assert soup.body.select_one(".error-message") is block
    assert block.get_text() == "Error: it broke"
    assert "it broke" in caplog.text


def test_error_log_without_document():
    assert error_log("only logged") is None
