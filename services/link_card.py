import requests
import structlog
from atproto import models
from bs4 import BeautifulSoup

import config

logger = structlog.get_logger(__name__)

HEADERS = {"User-Agent": "Mozilla/5.0 (compatible; BlueskyPost/1.0)"}
MAX_TITLE = 100
MAX_DESCRIPTION = 200


def _truncate(value, limit):
    if len(value) > limit:
        return value[: limit - 3] + "..."
    return value


def fetch_link_card(url):
    """Fetch a page's title/description for a link card. Returns an external embed or None."""
    try:
        resp = requests.get(
            url, headers=HEADERS, timeout=config.LINK_CARD_TIMEOUT, allow_redirects=True
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.debug("Failed to fetch URL for embed", url=url, err=str(e))
        return None

    content_type = resp.headers.get("Content-Type", "")
    if "text/html" not in content_type.lower():
        logger.debug("Skipping non-HTML URL for embed", url=url, content_type=content_type)
        return None

    soup = BeautifulSoup(resp.text, "html.parser")

    def get_meta(**attrs):
        tag = soup.find("meta", attrs=attrs)
        if tag:
            return (tag.get("content") or "").strip()
        return ""

    title = soup.title.string.strip() if soup.title and soup.title.string else ""
    title = title or get_meta(property="og:title")
    description = get_meta(property="og:description") or get_meta(name="description")

    if not title:
        logger.debug("No title found for embed", url=url)
        return None

    return models.AppBskyEmbedExternal.Main(
        external=models.AppBskyEmbedExternal.External(
            uri=url,
            title=_truncate(title, MAX_TITLE),
            description=_truncate(description, MAX_DESCRIPTION),
        )
    )
