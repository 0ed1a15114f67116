import os
from io import BytesIO

import structlog
from PIL import Image
from atproto import models

import config
from errors import SizeExceeded, UnsupportedFormat

logger = structlog.get_logger(__name__)

IMAGE = "image"
VIDEO = "video"
CAPTION = "caption"

MIME_TYPES = {
    IMAGE: {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".png": "image/png",
        ".gif": "image/gif",
        ".webp": "image/webp",
    },
    VIDEO: {
        ".mp4": "video/mp4",
        ".mov": "video/quicktime",
        ".webm": "video/webm",
    },
    CAPTION: {
        ".vtt": "text/vtt",
    },
}

MAX_SIZES = {
    IMAGE: config.BLUESKY_MAX_IMAGE_SIZE,
    VIDEO: config.BLUESKY_MAX_VIDEO_SIZE,
    CAPTION: config.BLUESKY_MAX_CAPTION_SIZE,
}

SUPPORTED_LABELS = {
    IMAGE: "JPEG, PNG, GIF, WebP",
    VIDEO: "MP4, MOV, WebM",
    CAPTION: "WebVTT",
}


def detect_mime_type(kind, path):
    """Map a filename extension to a MIME type, or None if unsupported."""
    ext = os.path.splitext(path)[1].lower()
    return MIME_TYPES[kind].get(ext)


def validate_media(kind, path, data):
    """Check size, then format. Returns the detected MIME type."""
    limit = MAX_SIZES[kind]
    if len(data) > limit:
        raise SizeExceeded(kind, path, len(data), limit)

    mime_type = detect_mime_type(kind, path)
    if mime_type is None:
        raise UnsupportedFormat(kind, path, SUPPORTED_LABELS[kind])
    return mime_type


def get_image_dimensions(data):
    """Read width/height from the image header. Returns None if undecodable."""
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
    except Exception as e:
        logger.debug("Could not determine image dimensions", err=str(e))
        return None

    if width <= 0 or height <= 0:
        return None
    logger.debug("Image dimensions", width=width, height=height)
    return models.AppBskyEmbedDefs.AspectRatio(width=width, height=height)
