from __future__ import annotations

from podterm.ui import formatting
from podterm.ui.formatting import build_details, sanitize_description

from helpers import make_episode, make_podcast


def test_sanitize_strips_tags_and_decodes_entities() -> None:
    assert sanitize_description("Hello<br/>World<p>Bold</p>&amp;more") == "Hello\nWorldBold&more"


def test_sanitize_collapses_line_breaks() -> None:
    assert sanitize_description("A\n\n\n\nB") == "A\n\nB"


def test_sanitize_br_variants_swallow_surrounding_breaks() -> None:
    assert sanitize_description("one\n<br>\ntwo<br />three") == "one\ntwo\nthree"


def test_sanitize_is_idempotent() -> None:
    # holds for input without entity-escaped angle brackets; see the test below
    samples = [
        "Hello<br/>World<p>Bold</p>&amp;more",
        "A\n\n\n\nB",
        "<ul><li>first</li><li>second</li></ul>\n\n\n&quot;quoted&quot;",
        "plain text",
    ]
    for sample in samples:
        once = sanitize_description(sample)
        assert sanitize_description(once) == once


def test_escaped_angle_brackets_decode_after_tag_stripping() -> None:
    once = sanitize_description("x &lt; y &gt; z")
    assert once == "x < y > z"
    # decoded brackets look like a tag to a second pass
    assert sanitize_description(once) == "x  z"


def test_decode_failure_falls_back_to_stripped_text(monkeypatch) -> None:
    def explode(text: str) -> str:
        raise ValueError("bad entity")

    monkeypatch.setattr(formatting.html, "unescape", explode)
    assert sanitize_description("<b>a</b>&amp;b") == "a&amp;b"


def test_build_details_maps_empty_fields_to_none() -> None:
    podcast = make_podcast(1, title="")
    podcast.explicit = True
    episode = make_episode(5, title="", description="")
    details = build_details(podcast, episode)
    assert details.pod_title is None
    assert details.ep_title is None
    assert details.description is None
    assert details.explicit is True
    assert details.duration == "00:30:00"


def test_build_details_without_podcast() -> None:
    episode = make_episode(5, description="<p>Show notes</p>")
    details = build_details(None, episode)
    assert details.pod_title is None
    assert details.ep_title == "Episode 5"
    assert details.description == "Show notes"
