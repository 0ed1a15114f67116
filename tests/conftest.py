from io import BytesIO

import pytest
from PIL import Image

from platforms.base import Session
from platforms.bluesky_client import BlueskyClient
from platforms.video_service import VideoServiceClient

PDS_URL = "https://pds.test"
VIDEO_URL = "https://video.test"
DID = "did:plc:testuser"
CID = "bafkreibabalobzn6cd366ukcsjycp4yymjymgfxcv6xczmlgpemzkz3cfa"


@pytest.fixture
def bluesky():
    """A PDS client that already holds a session, so no login call is made."""
    client = BlueskyClient(PDS_URL, "alice.test", "app-password")
    client._session = Session(access_token="access-token", did=DID)
    return client


@pytest.fixture
def video_service():
    return VideoServiceClient(did=DID, service_url=VIDEO_URL)


@pytest.fixture
def blob_json():
    def make(mime_type="image/png", size=68, link=CID):
        return {
            "$type": "blob",
            "ref": {"$link": link},
            "mimeType": mime_type,
            "size": size,
        }
    return make


@pytest.fixture
def png_bytes():
    def make(width=3, height=2):
        buf = BytesIO()
        Image.new("RGB", (width, height), color=(0, 133, 255)).save(buf, "PNG")
        return buf.getvalue()
    return make


@pytest.fixture
def png_file(tmp_path, png_bytes):
    def make(name="image.png", width=3, height=2):
        path = tmp_path / name
        path.write_bytes(png_bytes(width, height))
        return str(path)
    return make
