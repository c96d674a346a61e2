"""Readiness of a podcast for submission to each podcast directory."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

DIRECTORY_TARGETS = ("apple", "spotify", "amazon")


@dataclass
class Issue:
    code: str
    message: str
    action: str
    field: str | None = None


@dataclass
class TargetResult:
    target: str
    errors: list[Issue] = field(default_factory=list)
    warnings: list[Issue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict:
        return {
            "target": self.target,
            "ok": self.ok,
            "errors": [asdict(e) for e in self.errors],
            "warnings": [asdict(w) for w in self.warnings],
        }


def check_target(target: str, podcast: Any, published_episode_count: int) -> TargetResult:
    result = TargetResult(target)

    if not podcast.title:
        result.errors.append(
            Issue("missing_title", "Podcast title is required", "Set a title in podcast settings", "title")
        )
    if not podcast.description:
        result.errors.append(
            Issue(
                "missing_description",
                "Podcast description is required",
                "Write a description in podcast settings",
                "description",
            )
        )
    if not podcast.cover_image_asset_id:
        result.warnings.append(
            Issue(
                "missing_cover_image",
                "No cover art set (recommended)",
                "Upload cover art for the podcast",
                "cover_image_asset_id",
            )
        )
    if published_episode_count == 0:
        result.warnings.append(
            Issue("no_published_episodes", "No published episodes yet", "Publish at least one episode")
        )

    if target == "amazon" and not podcast.contact_email:
        result.errors.append(
            Issue(
                "missing_itunes_email",
                "Amazon requires a contact email",
                "Add a contact email in podcast settings",
                "contact_email",
            )
        )
    if target in ("apple", "spotify") and not podcast.category:
        result.errors.append(
            Issue("missing_category", f"{target.capitalize()} requires a category", "Pick a category", "category")
        )
    if target == "apple" and not podcast.language:
        result.errors.append(
            Issue("missing_language", "Language is required", "Pick a language in podcast settings", "language")
        )
    return result


def check_directories(podcast: Any, published_episode_count: int, targets: list[str] | None = None) -> dict:
    results = [check_target(t, podcast, published_episode_count) for t in (targets or DIRECTORY_TARGETS)]
    return {"ok": all(r.ok for r in results), "results": [r.as_dict() for r in results]}
