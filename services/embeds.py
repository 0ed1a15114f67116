from dataclasses import dataclass

import structlog

from platforms.video_service import VideoServiceClient
from services.facets import first_link
from services.images import parse_image_paths, process_images
from services.link_card import fetch_link_card
from services.video import process_videos

logger = structlog.get_logger(__name__)


@dataclass
class AttachmentInputs:
    image_paths: str = ""
    image_alt_texts: str = ""
    video_path: str = ""
    video_alt_text: str = ""
    video_captions: str = ""
    enable_embeds: bool = True
    video_service_url: str = ""


def build_embed(inputs, bluesky, facets, video_service=None, **video_options):
    """Choose and build the single embed for a post.

    A video wins over images, images win over a link card, and a link card is
    only fetched for the first link in the text.
    """
    if inputs.video_path and inputs.video_path.strip():
        if inputs.image_paths:
            logger.info("Video supplied, ignoring image paths")
        if video_service is None:
            video_service = VideoServiceClient(
                did=bluesky.did, service_url=inputs.video_service_url or None
            )
        return process_videos(
            bluesky,
            video_service,
            inputs.video_path,
            inputs.video_alt_text,
            inputs.video_captions,
            **video_options,
        )

    if parse_image_paths(inputs.image_paths):
        return process_images(bluesky, inputs.image_paths, inputs.image_alt_texts)

    if inputs.enable_embeds:
        url = first_link(facets)
        if url:
            logger.debug("Fetching embed metadata", url=url)
            return fetch_link_card(url)

    return None
