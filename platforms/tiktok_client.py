import logging

import config
from platforms.base import PlatformClient
from platforms.errors import MediaTransferError, UpstreamError, ValidationError
from services.http import check_response, extract_error_message, fetch_with_retry
from services.media import download_media
from services.upload import chunked_upload

logger = logging.getLogger(__name__)

INBOX_INIT_URL = "https://open.tiktokapis.com/v2/post/publish/inbox/video/init/"


def plan_chunks(size):
    """Returns (chunk_size, total_chunk_count) following TikTok's chunk rules.

    Files up to the max chunk size go up in one piece. Larger files use the
    preferred chunk size and the final chunk takes the remainder, which must
    stay under the final-chunk ceiling.
    """
    if size <= config.TIKTOK_MAX_CHUNK_SIZE:
        return size, 1

    chunk_size = config.TIKTOK_PREFERRED_CHUNK_SIZE
    total = size // chunk_size
    final_chunk = chunk_size + (size - chunk_size * total)
    if final_chunk > config.TIKTOK_MAX_FINAL_CHUNK_SIZE:
        target_chunks = -(-size // int(config.TIKTOK_MAX_CHUNK_SIZE * 0.8))
        chunk_size = size // target_chunks
        chunk_size = max(chunk_size, config.TIKTOK_MIN_CHUNK_SIZE)
        chunk_size = min(chunk_size, config.TIKTOK_MAX_CHUNK_SIZE)
        total = size // chunk_size
    return chunk_size, total


class TikTokClient(PlatformClient):
    """Uploads a single video to the creator's TikTok inbox."""

    name = "tiktok"
    char_limit = 2200

    def validate(self, post):
        if not post.target.access_token or not post.target.account_id:
            raise ValidationError("Required parameters missing: accessToken, openId, or media")
        if len(post.media) != 1 or not post.media[0].is_video:
            raise ValidationError("TikTok only supports single video uploads")

    def _publish(self, post):
        item = post.media[0]
        media = download_media(item.url)
        size = media.size
        chunk_size, total_chunks = plan_chunks(size)
        logger.info("TikTok upload: %d bytes in %d chunk(s) of %d", size, total_chunks, chunk_size)

        post_info = {
            "title": post.message or "",
            "privacy_level": "PUBLIC_TO_EVERYONE",
            "disable_duet": False,
            "disable_comment": False,
            "disable_stitch": False,
            "brand_content_toggle": False,
            "brand_organic_toggle": False,
        }
        if item.thumbnail_url.startswith("http"):
            post_info["cover_image_url"] = item.thumbnail_url

        def init(session):
            resp = fetch_with_retry(
                INBOX_INIT_URL,
                method="POST",
                json={
                    "source_info": {
                        "source": "FILE_UPLOAD",
                        "video_size": size,
                        "chunk_size": chunk_size,
                        "total_chunk_count": total_chunks,
                    },
                    "post_info": post_info,
                },
                headers={"Authorization": f"Bearer {post.target.access_token}"},
            )
            data = check_response(resp, f"HTTP {resp.status_code}: {resp.reason}").get("data", {})
            session.upload_url = data.get("upload_url", "")
            session.media_id = data.get("publish_id", "")
            if not session.upload_url or not session.media_id:
                raise UpstreamError("Missing upload URL or publish ID from TikTok API")

        def append(session, index, start, chunk):
            end = start + len(chunk)
            resp = fetch_with_retry(
                session.upload_url,
                method="PUT",
                data=chunk,
                headers={
                    "Content-Type": "video/mp4",
                    "Content-Range": f"bytes {start}-{end - 1}/{size}",
                    "Content-Length": str(len(chunk)),
                },
            )
            if not resp.ok:
                message = extract_error_message(resp)
                raise MediaTransferError(
                    f"Failed to upload chunk {index + 1}: {resp.status_code} {message}"
                )

        def finalize(session):
            return session.media_id

        publish_id = chunked_upload(
            media.data, chunk_size, init, append, finalize, total_chunks=total_chunks
        )
        return publish_id, {
            "publishId": publish_id,
            "status": "uploaded_to_inbox",
            "chunkInfo": {"totalSize": size, "chunkSize": chunk_size, "totalChunks": total_chunks},
        }
