from datetime import datetime, timezone

import requests
import structlog
from atproto import models
from atproto.exceptions import ModelError

from errors import InvalidRecord, InvalidResponse, PublishFailed, SessionFailed, UploadRejected
from platforms.base import BlobUploader, ServiceAuthToken, Session
import config

logger = structlog.get_logger(__name__)


def post_url_from_uri(uri, handle):
    """Build the bsky.app URL for a record URI.

    URI format: at://did:plc:.../app.bsky.feed.post/rkey
    """
    rkey = uri.rstrip("/").split("/")[-1]
    return f"https://bsky.app/profile/{handle}/post/{rkey}"


def build_post_record(text, langs=None, facets=None, embed=None, created_at=None):
    """Assemble an app.bsky.feed.post record. Empty langs and facets are left out."""
    try:
        return models.AppBskyFeedPost.Record(
            text=text,
            langs=langs or None,
            facets=facets or None,
            embed=embed,
            created_at=created_at or datetime.now(timezone.utc).isoformat(),
        )
    except ValueError as e:
        # pydantic reports lexicon limits (text length, at most 3 langs) as ValueError
        raise InvalidRecord(str(e)) from e


class BlueskyClient(BlobUploader):
    name = "bluesky"
    char_limit = 300

    def __init__(self, pds_url=None, handle=None, password=None):
        self.pds_url = (pds_url or config.PDS_URL).rstrip("/")
        self.handle = handle if handle is not None else config.HANDLE
        self.password = password if password is not None else config.PASSWORD
        self._session = None

    def _xrpc(self, nsid):
        return f"{self.pds_url}/xrpc/{nsid}"

    def _auth_headers(self):
        return {"Authorization": f"Bearer {self._get_session().access_token}"}

    def _get_session(self):
        if self._session is None:
            self._session = self.login()
        return self._session

    @property
    def did(self):
        return self._get_session().did

    def login(self):
        """Create a session with the PDS. Returns a Session."""
        resp = requests.post(
            self._xrpc(models.ids.ComAtprotoServerCreateSession),
            json={"identifier": self.handle, "password": self.password},
        )
        if resp.status_code != 200:
            raise SessionFailed("create session", resp.status_code, resp.text)

        data = resp.json()
        self._session = Session(access_token=data["accessJwt"], did=data["did"])
        logger.debug("Session created successfully", user_id=self._session.did)
        return self._session

    def upload_blob(self, data, mime_type):
        headers = self._auth_headers()
        headers["Content-Type"] = mime_type
        resp = requests.post(
            self._xrpc(models.ids.ComAtprotoRepoUploadBlob),
            data=data,
            headers=headers,
        )
        if resp.status_code != 200:
            logger.error(
                "Failed to upload blob",
                status_code=resp.status_code,
                body=resp.text,
            )
            raise UploadRejected("upload blob", resp.status_code, resp.text)

        raw = resp.json().get("blob")
        if not raw:
            raise InvalidResponse("upload blob", "missing blob")
        try:
            return models.get_or_create(raw, models.blob_ref.BlobRef)
        except ModelError as e:
            raise InvalidResponse("upload blob", str(e)) from e

    def get_service_auth(self, audience, lxm, expires_at):
        """Exchange the session token for a token scoped to another service."""
        resp = requests.post(
            self._xrpc(models.ids.ComAtprotoServerGetServiceAuth),
            json={"aud": audience, "lxm": lxm, "exp": expires_at},
            headers=self._auth_headers(),
        )
        if not 200 <= resp.status_code < 300:
            logger.error(
                "Failed to get service auth token",
                status_code=resp.status_code,
                body=resp.text,
            )
            raise UploadRejected("get service auth token", resp.status_code, resp.text)
        return ServiceAuthToken(token=resp.json()["token"], expires_at=expires_at)

    def create_post(self, record):
        """Publish an app.bsky.feed.post record. Returns the new record's at:// URI."""
        session = self._get_session()
        resp = requests.post(
            self._xrpc(models.ids.ComAtprotoRepoCreateRecord),
            json={
                "repo": session.did,
                "collection": models.ids.AppBskyFeedPost,
                "record": models.get_model_as_dict(record),
            },
            headers=self._auth_headers(),
        )
        if resp.status_code != 200:
            logger.error(
                "Failed to publish post",
                status_code=resp.status_code,
                body=resp.text,
            )
            raise PublishFailed("publish post", resp.status_code, resp.text)
        return resp.json().get("uri", "")
