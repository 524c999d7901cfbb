import json
import logging

import requests

import config
from platforms.base import PlatformClient
from platforms.errors import PublishError, UpstreamError, ValidationError
from platforms.graph import get_page_access_token, graph_post, require_id
from services.http import check_response, fetch_with_retry
from services.media import is_valid_image_url, is_valid_url, validate_media_mix
from services.scheduling import ensure_min_lead, to_unix

logger = logging.getLogger(__name__)


class FacebookClient(PlatformClient):
    """Page posts: text, photos, default videos and reels."""

    name = "facebook"
    char_limit = 63206

    def validate(self, post):
        if not post.target.access_token:
            raise ValidationError("Access token is required")
        if not post.target.account_id:
            raise ValidationError("Valid page ID is required")
        if len(post.message or "") > self.char_limit:
            raise ValidationError(f"Facebook posts are limited to {self.char_limit} characters")
        validate_media_mix(post.media, "Facebook")
        if post.has_video and not is_valid_url(post.media[0].url):
            raise ValidationError("Invalid video URL provided for video upload.")
        if not post.media and not (post.message or "").strip():
            raise ValidationError("A message or media is required")
        ensure_min_lead(post.scheduled_at, config.FACEBOOK_MIN_SCHEDULE_MINUTES, "Facebook")

    def _publish(self, post):
        page_id = post.target.account_id
        page_token = get_page_access_token(page_id, post.target.access_token)
        schedule = self._schedule_params(post)

        if post.has_video:
            item = post.media[0]
            if post.options.get("facebook_video_type") == "reel":
                data = self._upload_reel(page_id, page_token, post, item)
                return data.get("post_id") or data.get("video_id", ""), data
            data = self._upload_video(page_id, page_token, post.message, item, schedule)
            return data.get("id", ""), data

        if len(post.media) == 1:
            data = graph_post(
                f"{page_id}/photos",
                "Failed to post image.",
                data={
                    "url": post.media[0].url,
                    "caption": post.message,
                    "access_token": page_token,
                    **schedule,
                },
            )
            return data.get("post_id") or data.get("id", ""), data

        feed = {"message": post.message, "access_token": page_token, **schedule}
        fallback = "Failed to create text-only post."
        if post.media:
            feed["attached_media"] = json.dumps(self._upload_unpublished_photos(page_id, page_token, post.media))
            fallback = "Failed to create multi-image post."
        data = graph_post(f"{page_id}/feed", fallback, data=feed)
        return data.get("id", ""), data

    def _schedule_params(self, post):
        if post.scheduled_at is None:
            return {}
        return {"published": "false", "scheduled_publish_time": str(to_unix(post.scheduled_at))}

    def _upload_unpublished_photos(self, page_id, page_token, media):
        attached = []
        for item in media:
            data = graph_post(
                f"{page_id}/photos",
                f"Failed to upload image {item.url}",
                data={"url": item.url, "published": "false", "access_token": page_token},
            )
            attached.append({"media_fbid": require_id(data, "Photo")})
        return attached

    def _upload_video(self, page_id, page_token, message, item, schedule):
        logger.info("Publishing Facebook video")
        data = {
            "access_token": page_token,
            "file_url": item.url,
            "description": message,
            **schedule,
        }
        files = None
        if item.thumbnail_url and is_valid_image_url(item.thumbnail_url):
            thumb = self._fetch_thumbnail(item.thumbnail_url)
            if thumb is not None:
                files = {"thumb": thumb}

        resp = fetch_with_retry(
            f"{config.GRAPH_API_BASE}/{page_id}/videos",
            method="POST",
            data=data,
            files=files,
        )
        return check_response(resp, "Failed to upload video")

    def _fetch_thumbnail(self, url):
        try:
            resp = fetch_with_retry(url)
        except (requests.RequestException, PublishError) as e:
            logger.warning("Could not fetch thumbnail, proceeding without it: %s", e)
            return None
        if not resp.ok:
            logger.warning("Could not fetch thumbnail (%s), proceeding without it", resp.status_code)
            return None
        content_type = resp.headers.get("content-type", "image/jpeg")
        return ("thumbnail.jpg", resp.content, content_type)

    def _upload_reel(self, page_id, page_token, post, item):
        logger.info("Publishing Facebook reel")
        start = graph_post(
            f"{page_id}/video_reels",
            "Failed to initialize reel upload",
            json={"upload_phase": "start", "access_token": page_token},
        )
        video_id = start.get("video_id")
        upload_url = start.get("upload_url")
        if not video_id or not upload_url:
            raise UpstreamError(f"Reel upload session is missing video_id or upload_url: {start}")

        resp = fetch_with_retry(
            upload_url,
            method="POST",
            headers={"Authorization": f"OAuth {page_token}", "file_url": item.url},
        )
        if not resp.ok:
            logger.error("Reel upload failed: %s", resp.text[:300])
            raise UpstreamError("Failed to upload reel video file.", status_code=resp.status_code)

        finish = {
            "access_token": page_token,
            "video_id": video_id,
            "upload_phase": "finish",
            "video_state": "PUBLISHED",
            "description": post.message,
        }
        if post.scheduled_at is not None:
            finish["video_state"] = "SCHEDULED"
            finish["scheduled_publish_time"] = to_unix(post.scheduled_at)
        if item.thumbnail_url and is_valid_image_url(item.thumbnail_url):
            finish["thumb_url"] = item.thumbnail_url
        data = graph_post(f"{page_id}/video_reels", "Failed to publish reel", json=finish)
        data.setdefault("video_id", video_id)
        return data
