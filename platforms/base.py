import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

import requests

from platforms.errors import PublishError

logger = logging.getLogger(__name__)


@dataclass
class MediaItem:
    url: str
    is_video: bool = False
    thumbnail_url: str = ""
    name: str = ""
    mime_type: str = ""


@dataclass
class TargetAccount:
    """Already-resolved credentials for one platform account.

    ``account_id`` is the Facebook page id, Instagram Business Account id,
    LinkedIn person or organization id, or TikTok open id depending on the
    platform. ``oauth_token``/``oauth_token_secret`` are the OAuth 1.0a user
    tokens X needs for chunked video upload.
    """

    access_token: str
    account_id: str = ""
    oauth_token: str = field(default="", repr=False)
    oauth_token_secret: str = field(default="", repr=False)
    account_type: str = ""


@dataclass
class NormalizedPost:
    """One post bound for one account. Clients read credentials only from ``target``."""

    message: str
    target: TargetAccount
    media: list = field(default_factory=list)
    scheduled_at: Optional[datetime] = None
    options: dict = field(default_factory=dict)

    @property
    def has_video(self):
        return any(item.is_video for item in self.media)

    @property
    def has_image(self):
        return any(not item.is_video for item in self.media)

    @property
    def video_count(self):
        return sum(1 for item in self.media if item.is_video)


@dataclass(frozen=True)
class PublishResult:
    platform: str
    success: bool
    remote_id: str = ""
    error: str = ""
    error_kind: str = ""
    response: dict = field(default_factory=dict)

    @property
    def http_status(self):
        if self.success:
            return 200
        return 400 if self.error_kind == "validation" else 500

    def to_dict(self):
        data = {"platform": self.platform, "success": self.success}
        if self.remote_id:
            data["remoteId"] = self.remote_id
        if self.error:
            data["error"] = self.error
        return data


class PlatformClient(ABC):
    name: str = ""
    char_limit: int = 0

    def validate(self, post):
        """Reject a post that can never succeed. Must not touch the network."""
        pass

    @abstractmethod
    def _publish(self, post):
        """Run the platform protocol. Returns (remote_id, response_dict)."""
        pass

    def publish(self, post):
        """Publish a post to the platform. Returns a PublishResult."""
        try:
            self.validate(post)
            remote_id, response = self._publish(post)
        except PublishError as e:
            logger.error("%s publish failed (%s): %s", self.name, e.kind, e)
            return PublishResult(
                platform=self.name,
                success=False,
                error=str(e),
                error_kind=e.kind,
            )
        except requests.RequestException as e:
            logger.error("%s publish failed on transport: %s", self.name, e)
            return PublishResult(
                platform=self.name,
                success=False,
                error=str(e),
                error_kind="network",
            )

        logger.info("%s publish succeeded: %s", self.name, remote_id)
        return PublishResult(
            platform=self.name,
            success=True,
            remote_id=str(remote_id or ""),
            response=response or {},
        )
