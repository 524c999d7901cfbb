import json
import re
from functools import partial
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

import pytest
import responses

from platforms.base import MediaItem, TargetAccount
from platforms.x_client import API_V2_URL, UPLOAD_V1_URL, XClient

USERS_ME = f"{API_V2_URL}/users/me"
TWEETS = f"{API_V2_URL}/tweets"
IMAGE_UPLOAD = f"{API_V2_URL}/media/upload"


@pytest.fixture
def x_client():
    return XClient(consumer_key="test-key", consumer_secret="test-secret")


@pytest.fixture
def make_post(make_post, x_account):
    return partial(make_post, target=x_account)


@pytest.fixture
def me():
    responses.add(responses.GET, USERS_ME, json={"data": {"id": "42", "username": "testuser"}})


def _field(body, name):
    if isinstance(body, bytes) and b"Content-Disposition" not in body:
        body = body.decode()
    if isinstance(body, str):
        return parse_qs(body).get(name, [None])[0]
    match = re.search(rb'name="' + name.encode() + rb'"\r\n\r\n([^\r]*)', body)
    return match.group(1).decode() if match else None


def _chunked_upload_handler(log):
    def _callback(request):
        query = parse_qs(urlparse(request.url).query)
        if query.get("command") == ["INIT"]:
            log.append(("INIT", int(query["total_bytes"][0]), query["media_category"][0]))
            return 202, {}, json.dumps({"media_id": 7, "media_id_string": "vid-1"})
        command = _field(request.body, "command")
        if command == "APPEND":
            log.append(("APPEND", int(_field(request.body, "segment_index"))))
            return 204, {}, ""
        log.append((command, _field(request.body, "media_id")))
        return 200, {}, json.dumps({
            "media_id_string": "vid-1",
            "processing_info": {"state": "pending", "check_after_secs": 1},
        })

    return _callback


def test_name_and_char_limit():
    client = XClient()
    assert client.name == "x"
    assert client.char_limit == 280


@responses.activate
def test_text_only(x_client, make_post, me):
    responses.add(responses.POST, TWEETS, json={"data": {"id": "123456", "text": "Hello from X!"}})

    result = x_client.publish(make_post(message="Hello from X!"))

    assert result.success is True
    assert result.platform == "x"
    assert result.remote_id == "123456"
    assert json.loads(responses.calls[1].request.body) == {"text": "Hello from X!"}
    assert responses.calls[1].request.headers["Authorization"] == "Bearer bearer-token"


@responses.activate
def test_platform_specific_text_wins(x_client, make_post, me):
    responses.add(responses.POST, TWEETS, json={"data": {"id": "1"}})

    x_client.publish(make_post(message="x" * 400, x_text="Short version"))

    assert json.loads(responses.calls[1].request.body)["text"] == "Short version"


@responses.activate
def test_video_chunked_upload(x_client, make_post, video, me, no_sleep):
    log = []
    responses.add(responses.GET, video.url, body=b"v" * 25, content_type="video/mp4")
    responses.add_callback(responses.POST, UPLOAD_V1_URL, callback=_chunked_upload_handler(log))
    responses.add(responses.GET, UPLOAD_V1_URL,
                  json={"processing_info": {"state": "in_progress", "check_after_secs": 2}})
    responses.add(responses.GET, UPLOAD_V1_URL, json={"processing_info": {"state": "succeeded"}})
    responses.add(responses.POST, TWEETS, json={"data": {"id": "987"}})

    with patch("config.X_CHUNK_SIZE", 10):
        result = x_client.publish(make_post(message="Video time", media=[video]))

    assert result.success is True
    assert result.remote_id == "987"
    assert log == [
        ("INIT", 25, "tweet_video"),
        ("APPEND", 0),
        ("APPEND", 1),
        ("APPEND", 2),
        ("FINALIZE", "vid-1"),
    ]
    assert json.loads(responses.calls[-1].request.body) == {
        "text": "Video time",
        "media": {"media_ids": ["vid-1"]},
    }
    assert responses.calls[2].request.headers["Authorization"].startswith("OAuth ")
    # FINALIZE hint first, then the STATUS hint
    assert [c.args[0] for c in no_sleep.call_args_list] == [1, 2]


@responses.activate
def test_video_processing_failure(x_client, make_post, video, me, no_sleep):
    responses.add(responses.GET, video.url, body=b"v" * 5)
    responses.add_callback(responses.POST, UPLOAD_V1_URL, callback=_chunked_upload_handler([]))
    responses.add(responses.GET, UPLOAD_V1_URL, json={
        "processing_info": {"state": "failed", "error": {"name": "InvalidMedia", "message": "Bad codec"}},
    })

    result = x_client.publish(make_post(media=[video]))

    assert result.success is False
    assert result.error_kind == "processing"
    assert "Bad codec" in result.error
    assert not any(c.request.url == TWEETS for c in responses.calls)


@responses.activate
def test_images_upload_then_post(x_client, make_post, me):
    images = [MediaItem(url=f"https://cdn.example.com/{i}.png") for i in (1, 2)]
    for item in images:
        responses.add(responses.GET, item.url, body=b"pngish")
    responses.add(responses.POST, IMAGE_UPLOAD, json={"data": {"id": "m-1"}})
    responses.add(responses.POST, IMAGE_UPLOAD, json={"data": {"id": "m-2"}})
    responses.add(responses.POST, TWEETS, json={"data": {"id": "55"}})

    result = x_client.publish(make_post(media=images))

    assert result.success is True
    upload = json.loads(responses.calls[2].request.body)
    assert upload["media_category"] == "tweet_image"
    assert upload["media_type"] == "image/png"
    assert json.loads(responses.calls[-1].request.body)["media"] == {"media_ids": ["m-1", "m-2"]}


@responses.activate
def test_failed_image_aborts_post(x_client, make_post, me):
    images = [MediaItem(url=f"https://cdn.example.com/{i}.jpg") for i in (1, 2)]
    for item in images:
        responses.add(responses.GET, item.url, body=b"jpg")
    responses.add(responses.POST, IMAGE_UPLOAD, json={"data": {"id": "m-1"}})
    responses.add(responses.POST, IMAGE_UPLOAD, status=400,
                  json={"errors": [{"message": "Unsupported media"}]})

    result = x_client.publish(make_post(media=images))

    assert result.success is False
    assert result.error == "Unsupported media"
    assert not any(c.request.url == TWEETS for c in responses.calls)


@responses.activate
def test_invalid_token_stops_before_upload(x_client, make_post, image):
    responses.add(responses.GET, USERS_ME, status=401,
                  json={"title": "Unauthorized", "detail": "Unauthorized", "status": 401})

    result = x_client.publish(make_post(media=[image]))

    assert result.success is False
    assert result.error == "Unauthorized"
    assert len(responses.calls) == 1


@responses.activate
def test_token_check_error_message_is_verbatim(x_client, make_post):
    responses.add(responses.GET, USERS_ME, status=401, json={"error": {"message": "X"}})

    result = x_client.publish(make_post())

    assert result.success is False
    assert result.error == "X"
    assert len(responses.calls) == 1


@responses.activate
def test_video_already_processed_skips_polling(x_client, make_post, video, me, no_sleep):
    responses.add(responses.GET, video.url, body=b"v" * 5)
    responses.add(responses.POST, UPLOAD_V1_URL, json={"media_id_string": "vid-2"})
    responses.add(responses.POST, UPLOAD_V1_URL, status=204)
    responses.add(responses.POST, UPLOAD_V1_URL,
                  json={"media_id_string": "vid-2", "processing_info": {"state": "succeeded"}})
    responses.add(responses.POST, TWEETS, json={"data": {"id": "988"}})

    result = x_client.publish(make_post(media=[video]))

    assert result.success is True
    assert not any(c.request.method == "GET" and c.request.url.startswith(UPLOAD_V1_URL)
                   for c in responses.calls)
    no_sleep.assert_not_called()


@responses.activate
def test_too_many_images(x_client, make_post):
    media = [MediaItem(url=f"https://cdn.example.com/{i}.jpg") for i in range(5)]
    result = x_client.publish(make_post(media=media))
    assert result.success is False
    assert result.error == "X supports at most 4 images per post."
    assert len(responses.calls) == 0


@responses.activate
def test_video_needs_oauth1_tokens(make_post, video):
    client = XClient(consumer_key="k", consumer_secret="s")
    result = client.publish(make_post(media=[video], target=TargetAccount("bearer-token")))
    assert result.error == "OAuth 1.0a tokens are required for video upload"
    assert len(responses.calls) == 0


@responses.activate
def test_text_too_long(x_client, make_post):
    result = x_client.publish(make_post(message="a" * 281))
    assert result.success is False
    assert result.http_status == 400
