import base64
import logging

import tweepy

import config
from platforms.base import PlatformClient
from platforms.errors import MediaTransferError, UpstreamError, ValidationError
from services.http import check_response, extract_error_message, fetch_with_retry
from services.media import download_media
from services.polling import wait_for_ready
from services.upload import chunked_upload

logger = logging.getLogger(__name__)

API_V2_URL = "https://api.twitter.com/2"
UPLOAD_V1_URL = "https://upload.twitter.com/1.1/media/upload.json"


class XClient(PlatformClient):
    """Posts through the v2 API with OAuth 2.0; videos go through the
    OAuth 1.0a signed v1.1 chunked upload endpoint."""

    name = "x"
    char_limit = 280

    def __init__(self, consumer_key=None, consumer_secret=None):
        self.consumer_key = config.X_API_KEY if consumer_key is None else consumer_key
        self.consumer_secret = config.X_API_SECRET if consumer_secret is None else consumer_secret

    def _bearer(self, account):
        return tweepy.OAuth2BearerHandler(account.access_token)

    def _oauth1(self, account):
        # fresh signer per request
        handler = tweepy.OAuth1UserHandler(
            self.consumer_key,
            self.consumer_secret,
            account.oauth_token,
            account.oauth_token_secret,
        )
        return handler.apply_auth()

    def _text(self, post):
        return post.options.get("x_text") or post.message or ""

    def validate(self, post):
        account = post.target
        if not (account.access_token or "").strip():
            raise ValidationError("X access token is required")
        text = self._text(post)
        if len(text) > self.char_limit:
            raise ValidationError(f"X posts are limited to {self.char_limit} characters")
        if not text.strip() and not post.media:
            raise ValidationError("A post needs text or media")
        if post.has_video and post.has_image:
            raise ValidationError("Cannot mix videos and images in the same X post.")
        if post.video_count > 1:
            raise ValidationError("X supports only one video per post.")
        if len(post.media) > config.X_MAX_IMAGES:
            raise ValidationError(f"X supports at most {config.X_MAX_IMAGES} images per post.")
        if post.has_video:
            if not (account.oauth_token and account.oauth_token_secret):
                raise ValidationError("OAuth 1.0a tokens are required for video upload")
            if not (self.consumer_key and self.consumer_secret):
                raise ValidationError("X API consumer key and secret are not configured")

    def validate_token(self, account):
        """Cheap users/me call so a dead token fails before any media upload."""
        resp = fetch_with_retry(f"{API_V2_URL}/users/me", auth=self._bearer(account))
        if not resp.ok:
            message = extract_error_message(resp, "Access token validation failed")
            logger.error("X access token validation failed: %s %s", resp.status_code, message)
            raise UpstreamError(message, status_code=resp.status_code)
        username = resp.json().get("data", {}).get("username", "")
        logger.info("X access token is valid for @%s", username)
        return username

    def _publish(self, post):
        account = post.target
        self.validate_token(account)

        media_ids = []
        for item in post.media:
            logger.info("Uploading media to X: %s", item.url)
            media_ids.append(self._upload_media(account, item))

        body = {"text": self._text(post)}
        if media_ids:
            body["media"] = {"media_ids": media_ids}

        resp = fetch_with_retry(
            f"{API_V2_URL}/tweets", method="POST", json=body, auth=self._bearer(account)
        )
        data = check_response(resp, "Failed to post tweet")
        tweet_id = data.get("data", {}).get("id", "")
        return tweet_id, data

    def _upload_media(self, account, item):
        max_size = config.X_MAX_VIDEO_SIZE if item.is_video else config.X_MAX_IMAGE_SIZE
        media = download_media(item.url, max_size=max_size)
        if item.is_video:
            return self._upload_video(account, media)
        return self._upload_image(account, media)

    def _upload_image(self, account, media):
        body = {
            "media": base64.b64encode(media.data).decode("ascii"),
            "media_category": "tweet_image",
            "media_type": media.mime_type,
        }
        resp = fetch_with_retry(
            f"{API_V2_URL}/media/upload", method="POST", json=body, auth=self._bearer(account)
        )
        data = check_response(resp, "Image upload failed")
        media_id = data.get("data", {}).get("id")
        if not media_id:
            raise MediaTransferError(f"Image upload returned no media id: {data}")
        return str(media_id)

    def _upload_video(self, account, media):
        media_type = media.mime_type if media.mime_type.startswith("video/") else "video/mp4"

        def init(session):
            resp = fetch_with_retry(
                UPLOAD_V1_URL,
                method="POST",
                params={
                    "command": "INIT",
                    "total_bytes": str(session.total_bytes),
                    "media_type": media_type,
                    "media_category": "tweet_video",
                },
                auth=self._oauth1(account),
            )
            data = check_response(resp, "INIT failed")
            session.media_id = data.get("media_id_string") or str(data.get("media_id", ""))
            if not session.media_id:
                raise MediaTransferError(f"INIT returned no media id: {data}")

        def append(session, index, start, chunk):
            resp = fetch_with_retry(
                UPLOAD_V1_URL,
                method="POST",
                data={
                    "command": "APPEND",
                    "media_id": session.media_id,
                    "segment_index": str(index),
                },
                files={"media": ("blob", chunk, media_type)},
                auth=self._oauth1(account),
            )
            if not resp.ok:
                message = extract_error_message(resp)
                raise MediaTransferError(f"APPEND failed for chunk {index}: {resp.status_code} {message}")

        def finalize(session):
            resp = fetch_with_retry(
                UPLOAD_V1_URL,
                method="POST",
                data={"command": "FINALIZE", "media_id": session.media_id},
                auth=self._oauth1(account),
            )
            return session.media_id, check_response(resp, "FINALIZE failed")

        media_id, finalized = chunked_upload(media.data, config.X_CHUNK_SIZE, init, append, finalize)
        logger.info("X video %s finalized", media_id)

        info = finalized.get("processing_info")
        if info and info.get("state") != "succeeded":
            wait_for_ready(
                lambda mid: self._processing_status(account, mid),
                media_id,
                max_attempts=config.X_POLL_MAX_ATTEMPTS,
                default_delay=config.X_POLL_DEFAULT_DELAY,
                initial_delay=info.get("check_after_secs") or config.X_POLL_DEFAULT_DELAY,
            )
        return media_id

    def _processing_status(self, account, media_id):
        resp = fetch_with_retry(
            UPLOAD_V1_URL,
            params={"command": "STATUS", "media_id": media_id},
            auth=self._oauth1(account),
        )
        data = check_response(resp, "STATUS check failed")
        info = data.get("processing_info")
        if not info:
            return None, None, ""
        error = info.get("error") or {}
        detail = error.get("message") or error.get("name") or ""
        return info.get("state"), info.get("check_after_secs"), detail
