import os
import platform
from dataclasses import dataclass
from datetime import datetime, timezone
from importlib import metadata

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


PDS_URL = os.getenv("ATP_PDS_HOST", "https://bsky.social").rstrip("/")
HANDLE = os.getenv("ATP_AUTH_HANDLE", "")
PASSWORD = os.getenv("ATP_AUTH_PASSWORD", "")

MESSAGE = os.getenv("BSKY_MESSAGE", "")
LANGS = os.getenv("BSKY_LANG", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "info")
ENABLE_EMBEDS = _env_bool("BSKY_ENABLE_EMBEDS", True)

IMAGE_PATHS = os.getenv("BSKY_IMAGE_PATHS", "")
IMAGE_ALT_TEXTS = os.getenv("BSKY_IMAGE_ALT_TEXTS", "")
VIDEO_PATH = os.getenv("BSKY_VIDEO_PATH", "")
VIDEO_ALT_TEXT = os.getenv("BSKY_VIDEO_ALT_TEXT", "")
VIDEO_CAPTIONS = os.getenv("BSKY_VIDEO_CAPTIONS", "")
VIDEO_SERVICE_URL = os.getenv("BSKY_VIDEO_SERVICE_URL", "https://video.bsky.app").rstrip("/")

GITHUB_OUTPUT = os.getenv("GITHUB_OUTPUT", "")

MAX_IMAGES = 4
BLUESKY_MAX_IMAGE_SIZE = 1_000_000  # 1MB
BLUESKY_MAX_VIDEO_SIZE = 50 * 1024 * 1024  # 50MB
BLUESKY_MAX_CAPTION_SIZE = 20_000
MAX_CAPTIONS = 20

VIDEO_POLL_INTERVAL = 2.0  # seconds
VIDEO_MAX_WAIT = 5 * 60.0
VIDEO_UPLOAD_TIMEOUT = 5 * 60
SERVICE_AUTH_TTL = 30 * 60
LINK_CARD_TIMEOUT = 10


@dataclass(frozen=True)
class RunContext:
    """Build and process metadata, captured once at startup for diagnostics."""

    version: str
    revision: str
    python_version: str
    started_at: datetime

    def as_log_fields(self):
        return {
            "version": self.version,
            "revision": self.revision,
            "python_version": self.python_version,
            "started_at": self.started_at.isoformat(),
        }


def _package_version():
    try:
        return metadata.version("bluesky-post")
    except metadata.PackageNotFoundError:
        return "dev"


def build_run_context():
    return RunContext(
        version=_package_version(),
        revision=os.getenv("GITHUB_SHA", ""),
        python_version=platform.python_version(),
        started_at=datetime.now(timezone.utc),
    )
