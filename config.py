import os
from dotenv import load_dotenv

load_dotenv()

GRAPH_API_VERSION = os.getenv("GRAPH_API_VERSION", "v19.0")
GRAPH_API_BASE = f"https://graph.facebook.com/{GRAPH_API_VERSION}"

# OAuth 1.0a consumer credentials, used for the v1.1 chunked video upload
X_API_KEY = os.getenv("X_API_KEY", "")
X_API_SECRET = os.getenv("X_API_SECRET", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "60"))
MEDIA_DOWNLOAD_TIMEOUT = float(os.getenv("MEDIA_DOWNLOAD_TIMEOUT", "30"))
FETCH_MAX_RETRIES = int(os.getenv("FETCH_MAX_RETRIES", "3"))
FETCH_RETRY_DELAY = float(os.getenv("FETCH_RETRY_DELAY", "2"))

POLL_MAX_ATTEMPTS = int(os.getenv("POLL_MAX_ATTEMPTS", "30"))
X_POLL_MAX_ATTEMPTS = int(os.getenv("X_POLL_MAX_ATTEMPTS", "10"))
X_POLL_DEFAULT_DELAY = 5
GRAPH_POLL_DEFAULT_DELAY = 3
# When true, a container that never reaches a terminal state fails the post
POLL_STRICT = os.getenv("POLL_STRICT", "").lower() in ("1", "true", "yes")

INSTAGRAM_MIN_SCHEDULE_MINUTES = int(os.getenv("INSTAGRAM_MIN_SCHEDULE_MINUTES", "13"))
FACEBOOK_MIN_SCHEDULE_MINUTES = 10

MAX_PARALLEL_PUBLISHES = int(os.getenv("MAX_PARALLEL_PUBLISHES", "3"))

X_MAX_IMAGES = 4
X_MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
X_MAX_VIDEO_SIZE = 512 * 1024 * 1024  # 512MB
X_CHUNK_SIZE = 1024 * 1024  # 1MB

TIKTOK_MIN_CHUNK_SIZE = 5 * 1024 * 1024
TIKTOK_PREFERRED_CHUNK_SIZE = 10 * 1024 * 1024
TIKTOK_MAX_CHUNK_SIZE = 64 * 1024 * 1024
TIKTOK_MAX_FINAL_CHUNK_SIZE = 128 * 1024 * 1024

YOUTUBE_DEFAULT_CATEGORY_ID = os.getenv("YOUTUBE_DEFAULT_CATEGORY_ID", "22")


def x_configured():
    return bool(X_API_KEY and X_API_SECRET)
