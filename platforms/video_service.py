import os
from urllib.parse import urlparse

import requests
import structlog
from atproto import models
from atproto.exceptions import ModelError

from errors import InvalidResponse, UploadRejected
import config

logger = structlog.get_logger(__name__)

ALREADY_EXISTS = "already_exists"


class VideoServiceClient:
    """Client for the video-processing service (video.bsky.app)."""

    def __init__(self, did, service_url=None):
        self.did = did
        self.service_url = (service_url or config.VIDEO_SERVICE_URL).rstrip("/")

    @property
    def audience(self):
        return f"did:web:{urlparse(self.service_url).netloc}"

    def _xrpc(self, nsid):
        return f"{self.service_url}/xrpc/{nsid}"

    def _job_status(self, raw, action, job_id=""):
        """Parse a jobStatus payload, filling the fields the service may leave out."""
        raw = dict(raw)
        raw.setdefault("did", self.did)
        raw.setdefault("jobId", job_id)
        raw.setdefault("state", "")
        try:
            return models.get_or_create(raw, models.AppBskyVideoDefs.JobStatus)
        except ModelError as e:
            raise InvalidResponse(action, str(e)) from e

    def upload_video(self, token, data, filename, mime_type):
        """Send the video bytes. Returns the job's models.AppBskyVideoDefs.JobStatus."""
        resp = requests.post(
            self._xrpc(models.ids.AppBskyVideoUploadVideo),
            params={"did": self.did, "name": os.path.basename(filename)},
            data=data,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": mime_type,
                "Content-Length": str(len(data)),
            },
            timeout=config.VIDEO_UPLOAD_TIMEOUT,
        )
        if resp.status_code not in (200, 201):
            logger.error(
                "Failed to upload video",
                status_code=resp.status_code,
                body=resp.text,
            )
            raise UploadRejected("upload video", resp.status_code, resp.text)

        payload = resp.json()
        return self._job_status(
            payload.get("jobStatus") or {}, "upload video", payload.get("jobId", "")
        )

    def get_job_status(self, token, job_id):
        resp = requests.get(
            self._xrpc(models.ids.AppBskyVideoGetJobStatus),
            params={"jobId": job_id},
            headers={"Authorization": f"Bearer {token}"},
        )

        if resp.status_code != 200:
            # The service answers a finished duplicate with an error payload
            # that still carries the completed job.
            status = self._already_exists_status(resp, job_id)
            if status is not None:
                logger.debug("Video already processed", job_id=job_id)
                return status
            logger.error(
                "Failed to get job status",
                status_code=resp.status_code,
                body=resp.text,
            )
            raise UploadRejected("get job status", resp.status_code, resp.text)

        return self._job_status(
            resp.json().get("jobStatus") or {}, "get job status", job_id
        )

    def _already_exists_status(self, resp, job_id):
        try:
            payload = resp.json()
        except requests.JSONDecodeError:
            return None
        if not isinstance(payload, dict) or payload.get("error") != ALREADY_EXISTS:
            return None
        raw = payload.get("jobStatus")
        if not isinstance(raw, dict) or not raw.get("blob"):
            return None
        return self._job_status(raw, "get job status", job_id)
