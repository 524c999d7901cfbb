from platforms.facebook_client import FacebookClient
from platforms.instagram_client import InstagramClient
from platforms.linkedin_client import LinkedInClient
from platforms.story_client import FacebookStoryClient, InstagramStoryClient
from platforms.tiktok_client import TikTokClient
from platforms.x_client import XClient
from platforms.youtube_client import YouTubeClient

PLATFORMS = {
    "facebook": FacebookClient,
    "instagram": InstagramClient,
    "x": XClient,
    "linkedin": LinkedInClient,
    "tiktok": TikTokClient,
    "youtube": YouTubeClient,
    "facebook_story": FacebookStoryClient,
    "instagram_story": InstagramStoryClient,
}


def get_platform(name, **kwargs):
    cls = PLATFORMS.get(name)
    if cls is None:
        raise ValueError(f"Unknown platform: {name}")
    return cls(**kwargs)
