import logging

import config
from platforms.base import PlatformClient
from platforms.errors import PublishError, UpstreamError, ValidationError
from services.http import check_response, fetch_with_retry
from services.media import download_media

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://www.googleapis.com/upload/youtube/v3/videos"
THUMBNAIL_URL = "https://www.googleapis.com/upload/youtube/v3/thumbnails/set"


class YouTubeClient(PlatformClient):
    """Resumable upload of a single video."""

    name = "youtube"
    char_limit = 5000

    def validate(self, post):
        if not (post.target.access_token or "").strip():
            raise ValidationError("YouTube access token is required")
        if not any(item.is_video for item in post.media):
            raise ValidationError(
                "No video file found in media. YouTube requires at least one video file."
            )
        if len(post.media) != 1:
            raise ValidationError("YouTube only supports a single video per upload")
        title = post.options.get("title") or ""
        if len(title) > 100:
            raise ValidationError("YouTube titles are limited to 100 characters")
        if post.options.get("privacy", "public") not in ("public", "private", "unlisted"):
            raise ValidationError("Privacy must be public, private or unlisted")

    def _publish(self, post):
        video = post.media[0]
        token = post.target.access_token
        media = download_media(video.url)
        content_type = media.mime_type if media.mime_type.startswith("video/") else "video/mp4"

        metadata = {
            "snippet": {
                "title": post.options.get("title") or "Untitled Video",
                "description": post.message or "",
                "tags": post.options.get("tags") or [],
                "categoryId": post.options.get("category_id") or config.YOUTUBE_DEFAULT_CATEGORY_ID,
            },
            "status": {
                "privacyStatus": post.options.get("privacy") or "public",
                "selfDeclaredMadeForKids": bool(post.options.get("made_for_kids", False)),
            },
        }

        init = fetch_with_retry(
            UPLOAD_URL,
            method="POST",
            params={"uploadType": "resumable", "part": "snippet,status"},
            json=metadata,
            headers={
                "Authorization": f"Bearer {token}",
                "X-Upload-Content-Type": content_type,
                "X-Upload-Content-Length": str(media.size),
            },
        )
        check_response(init, f"Failed to initialize YouTube upload: {init.status_code}")
        upload_url = init.headers.get("Location")
        if not upload_url:
            raise UpstreamError(
                "Failed to get resumable upload URL from YouTube. No Location header in response."
            )
        logger.info("YouTube upload session opened, sending %d bytes", media.size)

        resp = fetch_with_retry(
            upload_url,
            method="PUT",
            data=media.data,
            headers={"Content-Type": content_type},
        )
        data = check_response(resp, f"YouTube video upload failed: {resp.status_code}")
        video_id = data.get("id", "")

        if video.thumbnail_url and video_id:
            self._set_thumbnail(token, video_id, video.thumbnail_url)

        return video_id, data

    def _set_thumbnail(self, token, video_id, thumbnail_url):
        try:
            thumb = download_media(thumbnail_url)
            resp = fetch_with_retry(
                THUMBNAIL_URL,
                method="POST",
                params={"videoId": video_id},
                data=thumb.data,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": thumb.mime_type,
                },
            )
            check_response(resp, f"Thumbnail upload failed: {resp.status_code}")
        except PublishError as e:
            logger.warning("Failed to upload thumbnail for %s: %s", video_id, e)
            return False
        logger.info("Thumbnail set for %s", video_id)
        return True
