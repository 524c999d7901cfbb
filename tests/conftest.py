from datetime import datetime, timedelta, timezone
from unittest.mock import patch
from urllib.parse import parse_qs

import pytest

import app as app_module
from platforms.base import MediaItem, NormalizedPost, TargetAccount

GRAPH = "https://graph.facebook.com/v19.0"


@pytest.fixture(autouse=True)
def graph_base():
    """Pin the Graph API base so a GRAPH_API_VERSION in .env cannot leak into tests."""
    with patch("config.GRAPH_API_BASE", GRAPH):
        yield GRAPH


@pytest.fixture
def no_sleep():
    with patch("time.sleep") as mock_sleep:
        yield mock_sleep


@pytest.fixture
def app():
    flask_app = app_module.app
    flask_app.config["TESTING"] = True
    yield flask_app
    flask_app.config.pop("TESTING", None)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def account():
    return TargetAccount(access_token="user-token", account_id="1789")


@pytest.fixture
def x_account():
    return TargetAccount(
        access_token="bearer-token",
        oauth_token="oauth-token",
        oauth_token_secret="oauth-secret",
    )


@pytest.fixture
def make_post(account):
    def _make(message="Hello world", media=None, scheduled_in=None, target=None, **options):
        scheduled_at = None
        if scheduled_in is not None:
            scheduled_at = datetime.now(timezone.utc) + timedelta(minutes=scheduled_in)
        return NormalizedPost(
            message=message,
            target=target or account,
            media=media or [],
            scheduled_at=scheduled_at,
            options=options,
        )

    return _make


@pytest.fixture
def image():
    return MediaItem(url="https://cdn.example.com/photo.jpg")


@pytest.fixture
def video():
    return MediaItem(
        url="https://cdn.example.com/clip.mp4",
        is_video=True,
        thumbnail_url="https://cdn.example.com/clip-thumb.jpg",
    )


@pytest.fixture
def form():
    """Decode the urlencoded body of a recorded request into a flat dict."""

    def _form(call):
        body = call.request.body or ""
        if isinstance(body, bytes):
            body = body.decode()
        return {k: v[0] for k, v in parse_qs(body, keep_blank_values=True).items()}

    return _form
