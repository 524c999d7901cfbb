import io
import logging
from dataclasses import dataclass, field
from urllib.parse import urlparse

import requests
from PIL import Image

import config
from platforms.errors import MediaTransferError, ValidationError

logger = logging.getLogger(__name__)

EXTENSION_MIME_MAP = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
}

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")


@dataclass
class DownloadedMedia:
    url: str
    data: bytes = field(repr=False)
    mime_type: str

    @property
    def size(self):
        return len(self.data)


def get_mime_type_from_url(url):
    path = urlparse(url).path
    if "." not in path:
        return "application/octet-stream"
    extension = path.rsplit(".", 1)[1].lower()
    return EXTENSION_MIME_MAP.get(extension, "application/octet-stream")


def get_mime_type(data, url="", content_type=""):
    """Best guess at a media type: image sniffing, then URL extension, then header."""
    try:
        img = Image.open(io.BytesIO(data))
        fmt = (img.format or "").lower()
        if fmt:
            return EXTENSION_MIME_MAP.get(fmt, f"image/{fmt}")
    except OSError:
        pass

    mime_type = get_mime_type_from_url(url) if url else "application/octet-stream"
    if mime_type == "application/octet-stream" and content_type:
        mime_type = content_type.split(";", 1)[0].strip()
    return mime_type


def download_media(url, max_size=None, timeout=None):
    """Download a media file fully into memory. Returns a DownloadedMedia."""
    if timeout is None:
        timeout = config.MEDIA_DOWNLOAD_TIMEOUT
    try:
        resp = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise MediaTransferError(f"Failed to download media {url}: {e}") from e
    if not resp.ok:
        raise MediaTransferError(
            f"Failed to download media: {resp.status_code} {resp.reason}"
        )

    data = resp.content
    if max_size is not None and len(data) > max_size:
        raise MediaTransferError(
            f"Media too large ({len(data)} bytes), limit is {max_size} bytes"
        )

    mime_type = get_mime_type(data, url, resp.headers.get("content-type", ""))
    logger.info("Downloaded %s (%s, %d bytes)", url, mime_type, len(data))
    return DownloadedMedia(url=url, data=data, mime_type=mime_type)


def validate_media_mix(media, label, max_videos=1):
    """Reject mixed image/video posts and posts with too many videos."""
    has_video = any(item.is_video for item in media)
    has_image = any(not item.is_video for item in media)
    if has_video and has_image:
        raise ValidationError(f"Cannot mix videos and images in the same {label} post.")
    video_count = sum(1 for item in media if item.is_video)
    if video_count > max_videos:
        raise ValidationError(f"{label} supports only one video per post.")


def is_valid_url(url):
    if not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_valid_image_url(url):
    """Loose check that a thumbnail URL points at an image."""
    if not is_valid_url(url):
        return False
    path = urlparse(url).path.lower()
    if any(ext in path for ext in IMAGE_EXTENSIONS):
        return True
    return any(hint in path for hint in ("image", "thumb", "preview", "cover"))
