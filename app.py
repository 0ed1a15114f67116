"""Publish a single post to Bluesky, optionally with images, a video or a link card.

Run as: python app.py --handle me.bsky.social --password ... --text "Hello"
Every flag can also be set through its environment variable (see config.py).
"""

import argparse
import sys

import requests
import structlog

import config
from errors import PostError
from logs import configure_logging
from platforms import BlueskyClient
from platforms.bluesky_client import build_post_record, post_url_from_uri
from services.embeds import AttachmentInputs, build_embed
from services.facets import parse_facets

logger = structlog.get_logger(__name__)


def _split_langs(value):
    return [lang.strip() for lang in (value or "").split(",") if lang.strip()]


def build_parser():
    parser = argparse.ArgumentParser(description="Send a post to Bluesky")
    parser.add_argument("--pds-url", default=config.PDS_URL, help="Base URL of the PDS (env: ATP_PDS_HOST)")
    parser.add_argument("--handle", default=config.HANDLE, help="Account handle (env: ATP_AUTH_HANDLE)")
    parser.add_argument("--password", default=config.PASSWORD, help="App password (env: ATP_AUTH_PASSWORD)")
    parser.add_argument("--text", default=config.MESSAGE, help="Post text (env: BSKY_MESSAGE)")
    parser.add_argument("--lang", default=config.LANGS, help="Comma-separated ISO 639 codes (env: BSKY_LANG)")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="debug, info, warn or error (env: LOG_LEVEL)")
    parser.add_argument(
        "--enable-embeds",
        action=argparse.BooleanOptionalAction,
        default=config.ENABLE_EMBEDS,
        help="Attach a link card for the first URL (env: BSKY_ENABLE_EMBEDS)",
    )
    parser.add_argument("--image-paths", default=config.IMAGE_PATHS, help="Comma-separated image files, up to 4 (env: BSKY_IMAGE_PATHS)")
    parser.add_argument("--image-alt-texts", default=config.IMAGE_ALT_TEXTS, help="Comma-separated alt texts (env: BSKY_IMAGE_ALT_TEXTS)")
    parser.add_argument("--video-path", default=config.VIDEO_PATH, help="Video file (env: BSKY_VIDEO_PATH)")
    parser.add_argument("--video-alt-text", default=config.VIDEO_ALT_TEXT, help="Video alt text (env: BSKY_VIDEO_ALT_TEXT)")
    parser.add_argument("--video-captions", default=config.VIDEO_CAPTIONS, help="Caption tracks as lang=file.vtt,... (env: BSKY_VIDEO_CAPTIONS)")
    parser.add_argument("--video-service-url", default=config.VIDEO_SERVICE_URL, help="Video service URL (env: BSKY_VIDEO_SERVICE_URL)")
    return parser


def parse_args(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    for name in ("handle", "password", "text"):
        if not getattr(args, name):
            parser.error(f"--{name} is required")
    return args


def write_github_output(success, post_url=""):
    """Expose the result as step outputs when running inside GitHub Actions."""
    if not config.GITHUB_OUTPUT:
        return
    with open(config.GITHUB_OUTPUT, "a") as f:
        f.write(f"success={str(success).lower()}\n")
        if post_url:
            f.write(f"post-url={post_url}\n")


def run(args, bluesky=None, **video_options):
    """Log in, build the post with its embed, and publish it. Returns the post URL."""
    bluesky = bluesky or BlueskyClient(args.pds_url, args.handle, args.password)

    logger.info("Starting session creation")
    bluesky.login()

    facets = parse_facets(args.text)
    inputs = AttachmentInputs(
        image_paths=args.image_paths,
        image_alt_texts=args.image_alt_texts,
        video_path=args.video_path,
        video_alt_text=args.video_alt_text,
        video_captions=args.video_captions,
        enable_embeds=args.enable_embeds,
        video_service_url=args.video_service_url,
    )
    embed = build_embed(inputs, bluesky, facets, **video_options)

    record = build_post_record(
        args.text, langs=_split_langs(args.lang), facets=facets, embed=embed
    )
    uri = bluesky.create_post(record)
    post_url = post_url_from_uri(uri, args.handle) if uri else ""
    logger.info("Post published successfully", uri=uri, post_url=post_url)
    return post_url


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.log_level)
    context = config.build_run_context()
    logger.debug("Starting", **context.as_log_fields())

    try:
        post_url = run(args)
    except PostError as e:
        logger.error("Error publishing post", err=str(e), error_type=type(e).__name__)
        write_github_output(False)
        return 1
    except requests.RequestException as e:
        logger.error("Network error while publishing post", err=str(e))
        write_github_output(False)
        return 1

    write_github_output(True, post_url)
    return 0


if __name__ == "__main__":
    sys.exit(main())
