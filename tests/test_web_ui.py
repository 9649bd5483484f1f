"""Tests for web_ui.py: directory and chat routing."""
import pytest
from bs4 import BeautifulSoup

from viewer_settings import ViewerSettings
from web_ui import create_app


@pytest.fixture
def client(content_dir):
    settings = ViewerSettings(content_dir=str(content_dir), highlight=False)
    app = create_app(settings)
    app.config["TESTING"] = True
    return app.test_client()


def test_directory_view_without_path(client):
    response = client.get("/")
    assert response.status_code == 200
    soup = BeautifulSoup(response.get_data(as_text=True), "html.parser")
    links = [a["href"] for a in soup.select("a.directory-chat-link")]
    assert links == ["/?path=2024-05-02/gamma.md", "/?path=2024-05-01/alpha.md", "/?path=2024-05-01/beta.md"]
    outline = [li.get_text(strip=True) for li in soup.select(".directory-outline li")]
    assert outline == ["Deep Dive", "Setup", "Only Section"]


def test_empty_directory_message(tmp_path):
    app = create_app(ViewerSettings(content_dir=str(tmp_path), highlight=False))
    response = app.test_client().get("/")
    assert "No conversations found." in response.get_data(as_text=True)


def test_chat_view_with_path(client):
    response = client.get("/?path=2024-05-01/alpha.md")
    assert response.status_code == 200
    soup = BeautifulSoup(response.get_data(as_text=True), "html.parser")
    assert soup.title.get_text() == "Alpha Chat"
    assert soup.select_one(".chat-section-header")["data-section-id"] == "section-0"
    assert [m["data-speaker"] for m in soup.select(".message")] == ["user", "assistant"]
    assert soup.select_one(".header-nav .prev-link")["href"] == "/?path=2024-05-02/gamma.md"
    assert soup.select_one(".header-nav .next-link")["href"] == "/?path=2024-05-01/beta.md"


def test_chat_view_theme_parameter(client):
    response = client.get("/?path=2024-05-02/gamma.md&theme=dark")
    assert "#1a1b26" in response.get_data(as_text=True)


@pytest.mark.parametrize("path", ["../outside.md", "2024-05-01/missing.md", "2024-05-01/alpha.txt"])
def test_bad_paths_are_not_found(client, path):
    assert client.get("/", query_string={"path": path}).status_code == 404


def test_unreadable_chat_shows_error(client, content_dir):
    (content_dir / "broken.md").write_bytes(b"\xff\xfe\xfa not utf-8")
    response = client.get("/?path=broken.md")
    assert response.status_code == 500
    soup = BeautifulSoup(response.get_data(as_text=True), "html.parser")
    assert soup.select_one(".error-message a")["href"] == "/"


def test_api_lists_chats(client):
    data = client.get("/api/chats").get_json()
    names = [group["name"] for group in data["groups"]]
    assert names == ["2024-05-02", "2024-05-01"]
    alpha = data["groups"][1]["files"][0]
    assert alpha["title"] == "Alpha Chat"
    assert alpha["headers"] == [{"level": 2, "text": "Setup"}]
    assert alpha["url"] == "/?path=2024-05-01/alpha.md"


def test_outline_links_resolve_in_chat_page(client):
    directory = BeautifulSoup(client.get("/").get_data(as_text=True), "html.parser")
    href = directory.select_one('.directory-outline a[href^="/?path=2024-05-01/alpha.md"]')["href"]
    url, fragment = href.split("#")
    assert fragment == "setup"

    chat = BeautifulSoup(client.get(url).get_data(as_text=True), "html.parser")
    target = chat.find(id=fragment)
    assert target.get_text() == "Setup"
    assert target.find_parent(class_="chat-section-header")["data-anchor"] == fragment
