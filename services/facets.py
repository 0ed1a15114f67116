import re

from atproto import models

URL_PATTERN = re.compile(r"https?://[^\s<>\"'{}|\\^`\[\]]+")
HASHTAG_PATTERN = re.compile(r"(?<!\w)#(\w+)")
TRAILING_PUNCTUATION = ".,!?;:"
MAX_TAG_LENGTH = 640


def _byte_offset(text, index):
    return len(text[:index].encode("utf-8"))


def _facet(text, start, end, feature):
    return models.AppBskyRichtextFacet.Main(
        index=models.AppBskyRichtextFacet.ByteSlice(
            byte_start=_byte_offset(text, start),
            byte_end=_byte_offset(text, end),
        ),
        features=[feature],
    )


def parse_facets(text):
    """Find links and hashtags in text. Offsets are UTF-8 byte positions."""
    facets = []
    link_spans = []

    for match in URL_PATTERN.finditer(text):
        uri = match.group(0).rstrip(TRAILING_PUNCTUATION)
        if uri.endswith("://"):
            continue
        start = match.start()
        end = start + len(uri)
        link_spans.append((start, end))
        facets.append(
            _facet(text, start, end, models.AppBskyRichtextFacet.Link(uri=uri))
        )

    for match in HASHTAG_PATTERN.finditer(text):
        tag = match.group(1)
        # Skip numeric-only tags and "#fragment" pieces of a link
        if tag.isdigit() or len(tag) > MAX_TAG_LENGTH:
            continue
        if any(s <= match.start() < e for s, e in link_spans):
            continue
        facets.append(
            _facet(
                text, match.start(), match.end(), models.AppBskyRichtextFacet.Tag(tag=tag)
            )
        )

    facets.sort(key=lambda f: f.index.byte_start)
    return facets


def first_link(facets):
    """Return the URI of the first link facet, or None."""
    for facet in facets:
        for feature in facet.features:
            if isinstance(feature, models.AppBskyRichtextFacet.Link):
                return feature.uri
    return None
