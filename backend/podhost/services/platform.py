"""
Podcast client detection from User-Agent strings.

Rules are checked in order and the first match wins, so app-specific
signatures must stay ahead of the generic browser fallback (several apps
embed WebKit/Safari tokens in their agents).
"""
from __future__ import annotations

import re
from enum import Enum


class PodcastPlatform(str, Enum):
    apple_podcasts = "apple_podcasts"
    spotify = "spotify"
    amazon_music = "amazon_music"
    google_podcasts = "google_podcasts"
    overcast = "overcast"
    pocket_casts = "pocket_casts"
    castro = "castro"
    podbean = "podbean"
    stitcher = "stitcher"
    castbox = "castbox"
    podcast_addict = "podcast_addict"
    player_fm = "player_fm"
    breaker = "breaker"
    radio_public = "radio_public"
    web_browser = "web_browser"
    other = "other"


def _rule(*patterns: str) -> list[re.Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


PLATFORM_RULES: list[tuple[PodcastPlatform, list[re.Pattern[str]]]] = [
    (PodcastPlatform.apple_podcasts, _rule(r"AppleCoreMedia", r"iTunes", r"Podcasts/", r"Apple Podcasts")),
    (PodcastPlatform.spotify, _rule(r"Spotify/", r"SpotifyPodcasts")),
    (PodcastPlatform.amazon_music, _rule(r"AmazonMusic", r"Amazon Music", r"Alexa")),
    (PodcastPlatform.google_podcasts, _rule(r"GooglePodcasts", r"Google Podcasts", r"Google-Podcast")),
    (PodcastPlatform.overcast, _rule(r"Overcast/")),
    (PodcastPlatform.pocket_casts, _rule(r"PocketCasts", r"Pocket Casts")),
    (PodcastPlatform.castro, _rule(r"Castro/", r"Castro Podcasts")),
    (PodcastPlatform.podbean, _rule(r"Podbean")),
    (PodcastPlatform.stitcher, _rule(r"Stitcher")),
    (PodcastPlatform.castbox, _rule(r"CastBox")),
    (PodcastPlatform.podcast_addict, _rule(r"Podcast ?Addict")),
    (PodcastPlatform.player_fm, _rule(r"Player ?FM")),
    (PodcastPlatform.breaker, _rule(r"Breaker/")),
    (PodcastPlatform.radio_public, _rule(r"RadioPublic")),
]

BROWSER_PATTERNS = _rule(r"Mozilla", r"Chrome", r"Safari", r"Firefox", r"Edge", r"Opera")

DISPLAY_NAMES: dict[PodcastPlatform, str] = {
    PodcastPlatform.apple_podcasts: "Apple Podcasts",
    PodcastPlatform.spotify: "Spotify",
    PodcastPlatform.amazon_music: "Amazon Music",
    PodcastPlatform.google_podcasts: "Google Podcasts",
    PodcastPlatform.overcast: "Overcast",
    PodcastPlatform.pocket_casts: "Pocket Casts",
    PodcastPlatform.castro: "Castro",
    PodcastPlatform.podbean: "Podbean",
    PodcastPlatform.stitcher: "Stitcher",
    PodcastPlatform.castbox: "Castbox",
    PodcastPlatform.podcast_addict: "Podcast Addict",
    PodcastPlatform.player_fm: "Player FM",
    PodcastPlatform.breaker: "Breaker",
    PodcastPlatform.radio_public: "RadioPublic",
    PodcastPlatform.web_browser: "Web Browser",
    PodcastPlatform.other: "Other",
}


def detect_platform(user_agent: str | None) -> PodcastPlatform:
    if not user_agent:
        return PodcastPlatform.other

    for platform, patterns in PLATFORM_RULES:
        if any(p.search(user_agent) for p in patterns):
            return platform

    if any(p.search(user_agent) for p in BROWSER_PATTERNS):
        return PodcastPlatform.web_browser

    return PodcastPlatform.other


def platform_display_name(platform: PodcastPlatform | str) -> str:
    try:
        return DISPLAY_NAMES[PodcastPlatform(platform)]
    except ValueError:
        return DISPLAY_NAMES[PodcastPlatform.other]
