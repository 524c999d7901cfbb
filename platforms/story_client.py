import logging

from platforms.base import PlatformClient
from platforms.errors import UpstreamError, ValidationError
from platforms.graph import (
    get_page_access_token,
    graph_post,
    publish_container,
    require_id,
    wait_for_container,
)
from services.upload import reference_params

logger = logging.getLogger(__name__)


def validate_story(post):
    media = post.media
    if post.scheduled_at is not None:
        raise ValidationError("Stories cannot be scheduled")
    if not media:
        raise ValidationError("Stories require at least one media item")
    if len(media) > 1:
        raise ValidationError("Stories can only contain a single image or video")


class InstagramStoryClient(PlatformClient):
    name = "instagram_story"

    def validate(self, post):
        if not post.target.access_token or not post.target.account_id:
            raise ValidationError("Instagram access token and page ID are required")
        validate_story(post)

    def _publish(self, post):
        account = post.target
        item = post.media[0]
        token = account.access_token
        logger.info("Publishing Instagram Story (video=%s)", item.is_video)

        data = graph_post(
            f"{account.account_id}/media",
            "Failed to create Instagram Story container",
            data={**reference_params(item), "media_type": "STORIES", "access_token": token},
        )
        container_id = require_id(data, "Instagram Story container")

        if item.is_video:
            wait_for_container(container_id, token)

        published = publish_container(
            account.account_id,
            container_id,
            token,
            fallback="Failed to publish Instagram Story",
        )
        return published.get("id", ""), published


class FacebookStoryClient(PlatformClient):
    name = "facebook_story"

    def validate(self, post):
        if not post.target.access_token or not post.target.account_id:
            raise ValidationError("Facebook access token and page ID are required")
        validate_story(post)

    def _publish(self, post):
        page_id = post.target.account_id
        page_token = get_page_access_token(page_id, post.target.access_token)
        item = post.media[0]
        if item.is_video:
            return self._video_story(page_id, page_token, item)
        return self._photo_story(page_id, page_token, item)

    def _photo_story(self, page_id, page_token, item):
        logger.info("Uploading Facebook photo story")
        photo = graph_post(
            f"{page_id}/photos",
            "Failed to upload photo for story",
            data={"url": item.url, "published": "false", "access_token": page_token},
        )
        photo_id = require_id(photo, "Story photo")

        story = graph_post(
            f"{page_id}/photo_stories",
            "Failed to create Facebook Photo Story",
            data={"photo_id": photo_id, "access_token": page_token},
        )
        return story.get("post_id") or story.get("id", ""), story

    def _video_story(self, page_id, page_token, item):
        logger.info("Uploading Facebook video story")
        start = graph_post(
            f"{page_id}/video_stories",
            "Failed to initialize video story upload",
            json={"upload_phase": "start", "access_token": page_token},
        )
        video_id = start.get("video_id")
        if not video_id:
            raise UpstreamError(f"Video story upload session returned no video_id: {start}")
        logger.info("Video story upload session %s created", video_id)

        graph_post(
            video_id,
            "Failed to upload video for story",
            data={"access_token": page_token, "file_url": item.url},
        )

        finish = graph_post(
            f"{page_id}/video_stories",
            "Failed to publish Facebook Video Story",
            json={"video_id": video_id, "upload_phase": "finish", "access_token": page_token},
        )
        return finish.get("post_id") or video_id, finish
