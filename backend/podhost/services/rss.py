"""
RSS 2.0 + iTunes feed rendering.

Only episodes that are published and carry a resolved audio asset make it
into a feed. Item enclosures point at the play redirect endpoint so that
every download passes through play tracking.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Any, Iterable

from podhost.services.timeutil import ensure_utc

DEFAULT_AUTHOR_NAME = "podhost"
DEFAULT_EPISODE_DESCRIPTION = "Episode details on podhost"
GUID_PREFIX = "podhost:episode:"

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

# Ampersand must stay first, otherwise entities produced by the later
# substitutions get escaped twice.
_XML_ESCAPES = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
)


def escape_xml(value: Any) -> str:
    text = "" if value is None else str(value)
    for char, entity in _XML_ESCAPES:
        text = text.replace(char, entity)
    return text


def format_rfc2822(value: datetime) -> str:
    """Format as ``Sat, 24 Jan 2026 03:00:00 GMT`` (also the HTTP date form)."""
    value = ensure_utc(value)
    return (
        f"{_DAY_NAMES[value.weekday()]}, {value.day:02d} {_MONTH_NAMES[value.month - 1]} "
        f"{value.year:04d} {value.hour:02d}:{value.minute:02d}:{value.second:02d} GMT"
    )


def format_duration(seconds: int) -> str:
    hours, rest = divmod(int(seconds), 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    sign = "-" if number < 0 else ""
    number = abs(number)
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return sign + "".join(reversed(digits))


def epoch_millis(value: datetime) -> int:
    value = ensure_utc(value)
    return int(value.timestamp()) * 1000 + value.microsecond // 1000


def compute_etag(last_build_date: datetime) -> str:
    return f'"{to_base36(epoch_millis(last_build_date))}"'


@dataclass
class FeedEntry:
    """An episode paired with its audio asset (``None`` when unresolved)."""

    episode: Any
    audio: Any | None


@dataclass
class FeedDates:
    last_build_date: datetime
    pub_date: datetime


@dataclass
class RenderedFeed:
    xml: str
    last_build_date: datetime
    pub_date: datetime

    @property
    def etag(self) -> str:
        return compute_etag(self.last_build_date)

    @property
    def last_modified(self) -> str:
        return format_rfc2822(self.last_build_date)


def select_feed_entries(entries: Iterable[FeedEntry]) -> list[FeedEntry]:
    """Keep published episodes with audio, newest first."""
    kept = [
        e
        for e in entries
        if e.audio is not None and e.episode.status == "published" and e.episode.published_at is not None
    ]
    kept.sort(key=lambda e: ensure_utc(e.episode.published_at), reverse=True)
    return kept


def compute_feed_dates(podcast: Any, entries: list[FeedEntry]) -> FeedDates:
    """``entries`` must already be the selected, newest-first list."""
    last_build = ensure_utc(podcast.updated_at)
    for entry in entries:
        updated = ensure_utc(entry.episode.updated_at)
        if updated > last_build:
            last_build = updated

    if entries:
        pub_date = ensure_utc(entries[-1].episode.published_at)
    else:
        pub_date = ensure_utc(podcast.created_at)
    return FeedDates(last_build_date=last_build, pub_date=pub_date)


def is_not_modified(
    etag: str,
    last_build_date: datetime,
    if_none_match: str | None,
    if_modified_since: str | None,
) -> bool:
    if if_none_match is not None and if_none_match.strip() == etag:
        return True
    if if_modified_since:
        try:
            since = parsedate_to_datetime(if_modified_since)
        except (TypeError, ValueError):
            return False
        if since is None:
            return False
        # HTTP dates carry whole seconds only.
        return ensure_utc(last_build_date).replace(microsecond=0) <= ensure_utc(since)
    return False


def _render_item(podcast: Any, entry: FeedEntry, base_url: str) -> str:
    episode = entry.episode
    audio = entry.audio
    play_url = f"{base_url}/play/{episode.id}"
    explicit = "true" if podcast.explicit else "false"
    lines = [
        "    <item>",
        f"      <title>{escape_xml(episode.title)}</title>",
        f"      <description>{escape_xml(episode.description or DEFAULT_EPISODE_DESCRIPTION)}</description>",
        f"      <pubDate>{format_rfc2822(episode.published_at)}</pubDate>",
        f'      <guid isPermaLink="false">{escape_xml(GUID_PREFIX + str(episode.id))}</guid>',
        f'      <enclosure url="{escape_xml(play_url)}" length="{int(audio.byte_size)}" '
        f'type="{escape_xml(audio.content_type)}" />',
        f"      <itunes:explicit>{explicit}</itunes:explicit>",
    ]
    if episode.duration_seconds:
        lines.append(f"      <itunes:duration>{format_duration(episode.duration_seconds)}</itunes:duration>")
    lines.append("    </item>")
    return "\n".join(lines)


def render_feed(
    podcast: Any,
    entries: Iterable[FeedEntry],
    *,
    cover_image_url: str | None,
    channel_link: str,
    base_url: str,
) -> RenderedFeed:
    selected = select_feed_entries(entries)
    dates = compute_feed_dates(podcast, selected)
    explicit = "true" if podcast.explicit else "false"
    author = podcast.author_name or DEFAULT_AUTHOR_NAME

    channel = [
        f"    <title>{escape_xml(podcast.title)}</title>",
        f"    <description>{escape_xml(podcast.description)}</description>",
        f"    <language>{escape_xml(podcast.language)}</language>",
        f"    <link>{escape_xml(channel_link)}</link>",
        f"    <lastBuildDate>{format_rfc2822(dates.last_build_date)}</lastBuildDate>",
        f"    <pubDate>{format_rfc2822(dates.pub_date)}</pubDate>",
        f"    <itunes:author>{escape_xml(author)}</itunes:author>",
        f"    <itunes:summary>{escape_xml(podcast.description)}</itunes:summary>",
        f"    <itunes:type>{escape_xml(podcast.podcast_type)}</itunes:type>",
        f"    <itunes:explicit>{explicit}</itunes:explicit>",
        f'    <itunes:category text="{escape_xml(podcast.category)}" />',
    ]
    if cover_image_url:
        channel += [
            f'    <itunes:image href="{escape_xml(cover_image_url)}" />',
            "    <image>",
            f"      <url>{escape_xml(cover_image_url)}</url>",
            f"      <title>{escape_xml(podcast.title)}</title>",
            f"      <link>{escape_xml(channel_link)}</link>",
            "    </image>",
        ]
    if podcast.contact_email:
        channel += [
            "    <itunes:owner>",
            f"      <itunes:name>{escape_xml(author)}</itunes:name>",
            f"      <itunes:email>{escape_xml(podcast.contact_email)}</itunes:email>",
            "    </itunes:owner>",
        ]
    channel += [_render_item(podcast, entry, base_url) for entry in selected]

    xml = "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0"',
            '  xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd"',
            '  xmlns:content="http://purl.org/rss/1.0/modules/content/">',
            "  <channel>",
            *channel,
            "  </channel>",
            "</rss>",
            "",
        ]
    )
    return RenderedFeed(xml=xml, last_build_date=dates.last_build_date, pub_date=dates.pub_date)
