import logging

import config
from platforms.base import PlatformClient
from platforms.errors import UpstreamError, ValidationError
from platforms.graph import (
    graph_post,
    publish_container,
    require_id,
    wait_for_container,
)
from services.media import is_valid_image_url, validate_media_mix
from services.scheduling import ensure_min_lead, to_unix
from services.upload import reference_params

logger = logging.getLogger(__name__)


class InstagramClient(PlatformClient):
    """Feed posts: single image, single video (REELS with VIDEO fallback) or carousel."""

    name = "instagram"
    char_limit = 2200
    max_carousel_items = 10

    def __init__(self, caption_required=False):
        self.caption_required = caption_required

    def validate(self, post):
        account = post.target
        if not account.access_token:
            raise ValidationError("Access token is required")
        if not account.account_id:
            raise ValidationError("Instagram Business Account ID is required")
        if self.caption_required and not (post.message or "").strip():
            raise ValidationError("Caption is required for Instagram posts")
        if len(post.message or "") > self.char_limit:
            raise ValidationError(f"Instagram captions are limited to {self.char_limit} characters")
        if not post.media:
            raise ValidationError(
                "Instagram requires at least one image or video. Text-only posts are not supported."
            )
        if len(post.media) > self.max_carousel_items:
            raise ValidationError(
                f"Instagram carousels support at most {self.max_carousel_items} items"
            )
        validate_media_mix(post.media, "Instagram")
        ensure_min_lead(post.scheduled_at, config.INSTAGRAM_MIN_SCHEDULE_MINUTES, "Instagram")

    def _publish(self, post):
        account = post.target
        token = account.access_token
        extra = self._caption(post)
        if post.scheduled_at is not None:
            extra["published"] = "false"
            extra["scheduled_publish_time"] = str(to_unix(post.scheduled_at))

        if len(post.media) == 1:
            item = post.media[0]
            if item.is_video:
                container_id = self._create_video_container(account, item, extra)
                wait_for_container(container_id, token)
            else:
                container_id = self._create_container(
                    account,
                    {**reference_params(item), "media_type": "IMAGE", **extra},
                    "Failed to create image container",
                )
        else:
            container_id = self._create_carousel(account, post.media, extra)

        if post.scheduled_at is not None:
            logger.info("Instagram container %s scheduled for %s", container_id, post.scheduled_at)
            return container_id, {"id": container_id, "scheduled": True}

        data = publish_container(account.account_id, container_id, token)
        return data.get("id", ""), data

    def _caption(self, post):
        return {"caption": post.message} if post.message else {}

    def _create_container(self, account, params, fallback, what="Media container"):
        data = graph_post(
            f"{account.account_id}/media",
            fallback,
            data={**params, "access_token": account.access_token},
        )
        return require_id(data, what)

    def _create_video_container(self, account, item, extra):
        reels = {
            "video_url": item.url,
            "media_type": "REELS",
            "share_to_feed": "true",
            **extra,
        }
        if item.thumbnail_url and is_valid_image_url(item.thumbnail_url):
            reels["cover_url"] = item.thumbnail_url
        try:
            return self._create_container(account, reels, "Failed to create REELS container")
        except UpstreamError as e:
            logger.warning("REELS container rejected, trying VIDEO: %s", e)

        video = {"video_url": item.url, "media_type": "VIDEO", **extra}
        if item.thumbnail_url and is_valid_image_url(item.thumbnail_url):
            video["thumb"] = item.thumbnail_url
        return self._create_container(account, video, "Failed to create video container")

    def _create_carousel(self, account, media, extra):
        children = []
        for index, item in enumerate(media, start=1):
            logger.info("Creating carousel item %d/%d", index, len(media))
            params = {
                **reference_params(item),
                "media_type": "VIDEO" if item.is_video else "IMAGE",
                "is_carousel_item": "true",
            }
            if item.is_video and item.thumbnail_url and is_valid_image_url(item.thumbnail_url):
                params["thumb"] = item.thumbnail_url
            child_id = self._create_container(
                account,
                params,
                f"Failed to upload carousel item {index}",
                what=f"Carousel item {index}",
            )
            if item.is_video:
                wait_for_container(child_id, account.access_token)
            children.append(child_id)

        return self._create_container(
            account,
            {"media_type": "CAROUSEL", "children": ",".join(children), **extra},
            "Failed to create carousel",
            what="Carousel container",
        )
