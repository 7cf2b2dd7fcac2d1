from __future__ import annotations

import html
import re

from ..types import Episode, Podcast
from .details_panel import Details

# <br> tags together with any line breaks hugging them
BR_TAGS_RE = re.compile(r"((\r\n)|\r|\n)*<br */?>((\r\n)|\r|\n)*")
HTML_TAGS_RE = re.compile(r"<[^<>]*>")
MULTIPLE_LINE_BREAKS_RE = re.compile(r"((\r\n)|\r|\n){3,}")


def decode_entities(text: str) -> str:
    try:
        return html.unescape(text)
    except (ValueError, OverflowError):
        return text


def sanitize_description(raw: str) -> str:
    br_to_lb = BR_TAGS_RE.sub("\n", raw)
    stripped_tags = HTML_TAGS_RE.sub("", br_to_lb)
    decoded = decode_entities(stripped_tags)
    return MULTIPLE_LINE_BREAKS_RE.sub("\n\n", decoded)


def none_if_empty(value: str | None) -> str | None:
    if not value:
        return None
    return value


def build_details(podcast: Podcast | None, episode: Episode) -> Details:
    pod_title = None
    explicit = None
    if podcast is not None:
        pod_title = none_if_empty(podcast.title)
        explicit = podcast.explicit

    description = None
    if episode.description:
        description = sanitize_description(episode.description)

    return Details(
        pod_title=pod_title,
        ep_title=none_if_empty(episode.title),
        pubdate=episode.pubdate,
        duration=episode.format_duration(),
        explicit=explicit,
        description=description,
    )
