"""
LessonCraft asset dashboard.

Joins the public catalog (series → episodes → segments with audio keys)
with the R2 bucket listing to report which segments actually have audio,
storage per category, completion per category and the artwork library.
"""
from typing import Any, Dict, List

import requests

from ..errors import UpstreamError

CATEGORY_ORDER = ("CFM Documentary", "Easter", "Firesides", "Devotionals", "Artwork")
OTHER = "Other"

KEY_PREFIX_CATEGORY = (
    ("documentary/", "CFM Documentary"),
    ("easter/", "Easter"),
    ("firesides/", "Firesides"),
    ("devotionals/", "Devotionals"),
    ("artwork/", "Artwork"),
)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".gif")

SECURITY_SUMMARY = {
    "status": "Protected",
    "apiAuth": "HMAC token auth via X-App-Token validated with APP_SECRET",
    "dashboardAccess": "Read-only; R2 credentials are server-side only in this command center API route",
}


def fetch_catalog(url: str, timeout: float = 30.0) -> Dict[str, Any]:
    try:
        r = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise UpstreamError(f"Catalog request failed: {e}")
    if not r.ok:
        raise UpstreamError(f"Catalog request failed with status {r.status_code}",
                            status=r.status_code, details=r.text)
    try:
        return r.json()
    except ValueError:
        raise UpstreamError("Catalog returned invalid JSON", status=r.status_code)


def category_from_key(key: str) -> str:
    lower = key.lower()
    for prefix, category in KEY_PREFIX_CATEGORY:
        if lower.startswith(prefix):
            return category
    return OTHER


def infer_series_category(series: Dict[str, Any]) -> str:
    """Guess a series' category from its text, then from its first audio path."""
    haystack = " ".join([
        str(series.get("id") or ""),
        str(series.get("title") or ""),
        str(series.get("description") or ""),
    ]).lower()

    if "easter" in haystack:
        return "Easter"
    if "fireside" in haystack:
        return "Firesides"
    if "devotional" in haystack:
        return "Devotionals"
    if "cfm" in haystack or "come, follow me" in haystack or "documentary" in haystack:
        return "CFM Documentary"

    for episode in series.get("episodes") or []:
        for segment in episode.get("segments") or []:
            audio = segment.get("audioUrl")
            if isinstance(audio, str) and audio:
                from_path = category_from_key(audio)
                return from_path if from_path not in ("Artwork", OTHER) else OTHER
    return OTHER


def is_artwork_image(asset: Dict[str, Any]) -> bool:
    lower = str(asset.get("key") or "").lower()
    return lower.startswith("artwork/") and lower.endswith(IMAGE_EXTENSIONS)


def _content_type(asset: Dict[str, Any]):
    meta = asset.get("http_metadata") or {}
    return meta.get("contentType") or None


def _enrich_segment(segment: Dict[str, Any], objects: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    key = segment.get("audioUrl")
    meta = objects.get(key) if isinstance(key, str) else None
    return {
        **segment,
        "key": key,
        "hasAudio": bool(meta) or bool(segment.get("audioAvailable")),
        "fileSize": meta.get("size") if meta else None,
        "lastModified": meta.get("last_modified") if meta else None,
        "contentType": _content_type(meta) if meta else None,
    }


def _enrich_episode(episode: Dict[str, Any], objects: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    segments = [_enrich_segment(s, objects) for s in episode.get("segments") or []]
    completed = sum(1 for s in segments if s["hasAudio"])
    has_audio = completed > 0 or bool(episode.get("audioAvailable"))
    return {
        **episode,
        "hasAudio": has_audio,
        "isComplete": completed == len(segments) if segments else has_audio,
        "completedSegments": completed,
        "totalSegments": len(segments),
        "segments": segments,
    }


def _enrich_series(series: Dict[str, Any], objects: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
    episodes = [_enrich_episode(e, objects) for e in series.get("episodes") or []]
    return {
        **series,
        "category": infer_series_category(series),
        "episodes": episodes,
        "totals": {
            "episodes": len(episodes),
            "completedEpisodes": sum(1 for e in episodes if e["isComplete"]),
            "episodesWithAudio": sum(1 for e in episodes if e["hasAudio"]),
            "segments": sum(e["totalSegments"] for e in episodes),
            "completedSegments": sum(e["completedSegments"] for e in episodes),
        },
    }


def _artwork_entry(asset: Dict[str, Any]) -> Dict[str, Any]:
    key = asset["key"]
    parts = [p for p in key.split("/") if p]
    tags = parts[1:-1]
    return {
        "key": key,
        "filename": parts[-1] if parts else key,
        "size": asset.get("size"),
        "lastModified": asset.get("last_modified") or None,
        "contentType": _content_type(asset),
        "tags": tags,
        "category": tags[0] if tags else "uncategorized",
    }


def build_dashboard(catalog: Dict[str, Any], objects: List[Dict[str, Any]],
                    generated_at: str) -> Dict[str, Any]:
    """Assemble the dashboard payload from a catalog and a bucket listing."""
    by_key = {o["key"]: o for o in objects if isinstance(o, dict) and "key" in o}

    stats = {c: {"files": 0, "bytes": 0} for c in (*CATEGORY_ORDER, OTHER)}
    total_bytes = 0
    for asset in by_key.values():
        size = asset.get("size") or 0
        bucket = stats[category_from_key(asset["key"])]
        bucket["files"] += 1
        bucket["bytes"] += size
        total_bytes += size

    series = [_enrich_series(s, by_key) for s in catalog.get("series") or []]

    completion = {c: {"completed": 0, "total": 0} for c in CATEGORY_ORDER}
    for s in series:
        if s["category"] in completion:
            completion[s["category"]]["completed"] += s["totals"]["completedEpisodes"]
            completion[s["category"]]["total"] += s["totals"]["episodes"]

    artwork = sorted(
        (_artwork_entry(a) for a in by_key.values() if is_artwork_image(a)),
        key=lambda a: a["key"],
    )

    return {
        "generatedAt": generated_at,
        "catalog": {
            "version": catalog.get("version"),
            "updatedAt": catalog.get("updatedAt"),
        },
        "overview": {
            "totalFiles": len(by_key),
            "totalBytes": total_bytes,
            "categoryBreakdown": [
                {"category": c, "files": stats[c]["files"], "bytes": stats[c]["bytes"]}
                for c in CATEGORY_ORDER
            ],
            "completionByCategory": completion,
        },
        "series": series,
        "artwork": artwork,
        "security": dict(SECURITY_SUMMARY),
    }
