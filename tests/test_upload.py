from unittest.mock import MagicMock

import pytest

from platforms.base import MediaItem
from platforms.errors import MediaTransferError
from services.upload import chunked_upload, count_chunks, iter_chunks, reference_params


def test_count_chunks():
    assert count_chunks(0, 10) == 1
    assert count_chunks(10, 10) == 1
    assert count_chunks(11, 10) == 2


def test_iter_chunks_splits_evenly_with_short_tail():
    chunks = list(iter_chunks(b"a" * 25, 10))
    assert [(i, start, len(c)) for i, start, c in chunks] == [(0, 0, 10), (1, 10, 10), (2, 20, 5)]


def test_iter_chunks_final_chunk_absorbs_remainder():
    chunks = list(iter_chunks(b"a" * 25, 10, total_chunks=2))
    assert [(i, start, len(c)) for i, start, c in chunks] == [(0, 0, 10), (1, 10, 15)]


def test_chunked_upload_sequence():
    calls = []
    payload = bytes(range(25))

    def init(session):
        calls.append(("INIT", session.total_bytes))
        session.media_id = "m-1"

    def append(session, index, start, chunk):
        calls.append(("APPEND", index, session.bytes_transferred, chunk))

    def finalize(session):
        calls.append(("FINALIZE", session.bytes_transferred, session.chunk_index))
        return session.media_id

    assert chunked_upload(payload, 10, init, append, finalize) == "m-1"

    assert calls[0] == ("INIT", 25)
    appends = [c for c in calls if c[0] == "APPEND"]
    assert [c[1] for c in appends] == [0, 1, 2]
    assert [c[2] for c in appends] == [0, 10, 20]
    assert b"".join(c[3] for c in appends) == payload
    assert calls[-1] == ("FINALIZE", 25, 3)


def test_failed_chunk_aborts_before_finalize():
    finalize = MagicMock()

    def init(session):
        session.media_id = "m-1"

    def append(session, index, start, chunk):
        if index == 1:
            raise MediaTransferError("APPEND failed for chunk 1")

    with pytest.raises(MediaTransferError):
        chunked_upload(b"x" * 30, 10, init, append, finalize)
    finalize.assert_not_called()


def test_reference_params():
    assert reference_params(MediaItem(url="https://a/b.jpg")) == {"image_url": "https://a/b.jpg"}
    assert reference_params(MediaItem(url="https://a/b.mp4", is_video=True)) == {
        "video_url": "https://a/b.mp4"
    }
