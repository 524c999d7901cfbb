import logging
import math
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class UploadSession:
    """In-flight state of one chunked upload. Never persisted."""

    total_bytes: int
    media_id: str = ""
    upload_url: str = ""
    bytes_transferred: int = 0
    chunk_index: int = 0


def reference_params(item, video_key="video_url", image_key="image_url"):
    """Request params for platforms that fetch the media from its URL themselves."""
    if item.is_video:
        return {video_key: item.url}
    return {image_key: item.url}


def count_chunks(total_bytes, chunk_size):
    return max(1, math.ceil(total_bytes / chunk_size))


def iter_chunks(data, chunk_size, total_chunks=None):
    """Yield (index, start, chunk) over ``data``.

    With ``total_chunks`` given, the last chunk absorbs every remaining byte
    instead of producing a trailing short chunk.
    """
    size = len(data)
    if total_chunks is None:
        total_chunks = count_chunks(size, chunk_size)
    for index in range(total_chunks):
        start = index * chunk_size
        end = size if index == total_chunks - 1 else min(start + chunk_size, size)
        yield index, start, data[start:end]


def chunked_upload(data, chunk_size, init, append, finalize, total_chunks=None):
    """Drive an INIT / APPEND... / FINALIZE upload over ``data``.

    ``init(session)`` must set ``session.media_id`` and/or ``upload_url``;
    ``append(session, index, start, chunk)`` sends one chunk; ``finalize(session)``
    closes the session and its return value is returned. Any exception raised
    by a step aborts the whole upload; there is no resume.
    """
    session = UploadSession(total_bytes=len(data))
    init(session)
    logger.info(
        "Upload session %s started for %d bytes", session.media_id or "(url)", session.total_bytes
    )

    chunks = list(iter_chunks(data, chunk_size, total_chunks))
    for index, start, chunk in chunks:
        append(session, index, start, chunk)
        session.bytes_transferred += len(chunk)
        session.chunk_index = index + 1
        logger.info(
            "Chunk %d/%d uploaded (%d/%d bytes)",
            index + 1, len(chunks), session.bytes_transferred, session.total_bytes,
        )

    return finalize(session)
