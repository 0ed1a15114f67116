"""Video attachment processing.

A video goes through a fixed sequence: read the file, validate it, trade the
session token for a service token scoped to the video service, upload, and
then either take the blob straight from the upload response or poll the job
until the service reports a blob, a failure, or the deadline passes.
"""

import os
import time

import structlog
from atproto import models

import config
from errors import (
    ProcessingFailed,
    ProcessingTimedOut,
    RequestFailed,
    TooManyAttachments,
    UnsupportedFormat,
)
from services.images import read_file
from services.media import CAPTION, VIDEO, validate_media

logger = structlog.get_logger(__name__)

DEFAULT_VIDEO_ALT = "Video"
FAILED_STATES = ("failed", "JOB_STATE_FAILED")


def _is_failed(status):
    return status.state in FAILED_STATES or bool(status.error)


def poll_job_until_complete(
    video_service,
    token,
    job_id,
    clock=time.monotonic,
    sleep=time.sleep,
    poll_interval=config.VIDEO_POLL_INTERVAL,
    max_wait=config.VIDEO_MAX_WAIT,
):
    """Poll the job status until a blob appears. Returns the models.BlobRef.

    Raises ProcessingFailed when the service reports a failure and
    ProcessingTimedOut once ``max_wait`` seconds have passed since the first
    poll.
    """
    started = clock()

    while True:
        status = video_service.get_job_status(token, job_id)
        logger.debug(
            "Video processing status",
            job_id=job_id,
            state=status.state,
            progress=status.progress,
        )

        if status.blob is not None:
            logger.info("Video processing complete", job_id=job_id)
            return status.blob

        if _is_failed(status):
            raise ProcessingFailed(job_id, status.error or status.message or status.state)

        waited = clock() - started
        if waited > max_wait:
            raise ProcessingTimedOut(job_id, waited)

        sleep(poll_interval)


def parse_caption_specs(captions):
    """Split ``"en=subs.vtt, de=untertitel.vtt"`` into (lang, path) pairs."""
    pairs = []
    for entry in (captions or "").split(","):
        entry = entry.strip()
        if not entry:
            continue
        lang, sep, path = entry.partition("=")
        if not sep or not lang.strip() or not path.strip():
            raise UnsupportedFormat(CAPTION, entry, "lang=path.vtt")
        pairs.append((lang.strip(), path.strip()))
    if len(pairs) > config.MAX_CAPTIONS:
        raise TooManyAttachments(CAPTION, len(pairs), config.MAX_CAPTIONS)
    return pairs


def upload_captions(uploader, captions):
    tracks = []
    for lang, path in parse_caption_specs(captions):
        data = read_file(path)
        mime_type = validate_media(CAPTION, path, data)
        logger.debug("Uploading caption", path=path, lang=lang)
        try:
            blob = uploader.upload_blob(data, mime_type)
        except RequestFailed as e:
            raise e.for_path(path) from e
        tracks.append(models.AppBskyEmbedVideo.Caption(lang=lang, file=blob))
    return tracks


def _upload_and_wait(bluesky, video_service, path, data, mime_type, now, poll_options):
    logger.info("Getting service auth token for video upload")
    service_token = bluesky.get_service_auth(
        video_service.audience,
        models.ids.ComAtprotoRepoUploadBlob,
        int(now()) + config.SERVICE_AUTH_TTL,
    )

    logger.info("Uploading video to service", size=len(data), mime_type=mime_type)
    job = video_service.upload_video(
        service_token.token, data, os.path.basename(path), mime_type
    )

    if job.blob is not None:
        logger.info("Video already processed, using existing blob", job_id=job.job_id)
        return job.blob

    logger.info("Video uploaded, waiting for processing", job_id=job.job_id)
    return poll_job_until_complete(
        video_service, service_token.token, job.job_id, **poll_options
    )


def process_video(bluesky, video_service, path, alt_text, captions="", now=time.time, **poll_options):
    """Upload a single video and wait for it to be processed.

    Returns an AppBskyEmbedVideo.Main. Upload and processing failures are
    re-raised with ``path`` attached.
    """
    logger.info("Processing video", path=path)

    data = read_file(path)
    mime_type = validate_media(VIDEO, path, data)
    tracks = upload_captions(bluesky, captions)

    try:
        blob = _upload_and_wait(bluesky, video_service, path, data, mime_type, now, poll_options)
    except (RequestFailed, ProcessingFailed, ProcessingTimedOut) as e:
        raise e.for_path(path) from e

    return models.AppBskyEmbedVideo.Main(video=blob, alt=alt_text, captions=tracks or None)


def process_videos(bluesky, video_service, video_path, alt_text="", captions="", **options):
    """Process the video at ``video_path``, or return None when no path is given."""
    path = (video_path or "").strip()
    if not path:
        return None

    alt_text = (alt_text or "").strip() or DEFAULT_VIDEO_ALT
    return process_video(bluesky, video_service, path, alt_text, captions, **options)
