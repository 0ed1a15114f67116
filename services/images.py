import structlog
from atproto import models

import config
from errors import FileReadError, RequestFailed, TooManyAttachments
from services.media import IMAGE, get_image_dimensions, validate_media

logger = structlog.get_logger(__name__)


def parse_image_paths(image_paths):
    """Split a comma-separated path list, trimming and dropping empty entries."""
    if not image_paths:
        return []
    return [p.strip() for p in image_paths.split(",") if p.strip()]


def resolve_alt_text(index, alt_texts):
    """Pick the alt text for the image at ``index``.

    A non-blank entry at the same position wins. Failing that, a single
    non-blank alt text is shared by every image. Otherwise the image gets a
    numbered default such as "Image 1".
    """
    if index < len(alt_texts) and alt_texts[index].strip():
        return alt_texts[index].strip()

    if len(alt_texts) == 1 and alt_texts[0].strip():
        return alt_texts[0].strip()

    return f"Image {index + 1}"


def read_file(path):
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise FileReadError(path, e.strerror or str(e)) from e


def process_image(uploader, path, alt_text):
    """Read, validate and upload one image. Returns an AppBskyEmbedImages.Image."""
    logger.debug("Processing image", path=path, alt=alt_text)

    data = read_file(path)
    mime_type = validate_media(IMAGE, path, data)

    logger.debug("Uploading image blob", path=path, size=len(data), mime_type=mime_type)
    try:
        blob = uploader.upload_blob(data, mime_type)
    except RequestFailed as e:
        raise e.for_path(path) from e

    return models.AppBskyEmbedImages.Image(
        alt=alt_text,
        image=blob,
        aspect_ratio=get_image_dimensions(data),
    )


def process_images(uploader, image_paths, alt_texts=""):
    """Upload every image in order and wrap them in an images embed.

    Returns None when no paths are given. The first failure aborts the batch;
    blobs already uploaded for earlier images are left behind.
    """
    paths = parse_image_paths(image_paths)
    if not paths:
        return None

    if len(paths) > config.MAX_IMAGES:
        raise TooManyAttachments(IMAGE, len(paths), config.MAX_IMAGES)

    alts = (alt_texts or "").split(",")
    images = []
    for i, path in enumerate(paths):
        images.append(process_image(uploader, path, resolve_alt_text(i, alts)))

    logger.info("Images uploaded", count=len(images))
    return models.AppBskyEmbedImages.Main(images=images)
