from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Union

from atproto import models

# One post carries at most one of these; each serializes with its own $type.
Embed = Union[
    models.AppBskyEmbedExternal.Main,
    models.AppBskyEmbedImages.Main,
    models.AppBskyEmbedVideo.Main,
    None,
]


@dataclass(frozen=True)
class Session:
    access_token: str = field(repr=False)
    did: str


@dataclass(frozen=True)
class ServiceAuthToken:
    token: str = field(repr=False)
    expires_at: int


class BlobUploader(ABC):
    @abstractmethod
    def upload_blob(self, data, mime_type):
        """Store raw bytes on the PDS. Returns a models.BlobRef."""
        pass
