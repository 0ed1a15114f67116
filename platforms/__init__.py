from platforms.bluesky_client import BlueskyClient
from platforms.video_service import VideoServiceClient

__all__ = ["BlueskyClient", "VideoServiceClient"]
