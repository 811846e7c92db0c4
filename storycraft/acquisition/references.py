# storycraft/acquisition/references.py
"""
Reference extraction: URL -> AcquisitionReference.

Pure, deterministic pattern matching over the known YouTube URL shapes.
No network calls. Patterns are tried in order; the first match wins.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

from storycraft.acquisition.schema import AcquisitionReference, ContentKind, KindHint


_ID = r"([A-Za-z0-9_-]{6,64})"
_HOST = r"(?:https?://)?(?:www\.|m\.|music\.)?"

# (name, pattern, is_shorts)
REFERENCE_PATTERNS: Tuple[Tuple[str, re.Pattern[str], bool], ...] = (
    ("shorts", re.compile(_HOST + r"youtube\.com/shorts/" + _ID), True),
    ("watch", re.compile(_HOST + r"youtube\.com/watch\?(?:[^#\s]*&)?v=" + _ID), False),
    ("short_link", re.compile(r"(?:https?://)?youtu\.be/" + _ID), False),
    ("embed", re.compile(_HOST + r"youtube(?:-nocookie)?\.com/embed/" + _ID), False),
    ("legacy_v", re.compile(_HOST + r"youtube\.com/v/" + _ID), False),
    ("live", re.compile(_HOST + r"youtube\.com/live/" + _ID), False),
)


def extract_reference(url: str) -> Optional[AcquisitionReference]:
    """
    Return the reference for a known URL shape, or None.

    Idempotent: extracting from the canonical URL of a reference yields the
    same reference id.
    """
    if not isinstance(url, str):
        return None
    candidate = url.strip()
    if not candidate:
        return None

    for name, pattern, is_shorts in REFERENCE_PATTERNS:
        match = pattern.search(candidate)
        if match:
            return AcquisitionReference(
                reference_id=match.group(1),
                url=candidate,
                is_shorts=is_shorts,
                pattern=name,
            )
    return None


def is_likely_shorts(url: str) -> bool:
    reference = extract_reference(url)
    return bool(reference and reference.is_shorts)


def resolve_kind(reference: AcquisitionReference, kind_hint: KindHint | str) -> ContentKind:
    """Explicit hint wins; otherwise the URL shape decides."""
    hint = KindHint(kind_hint)
    if hint is KindHint.SHORTS:
        return ContentKind.SHORTS
    if hint is KindHint.VIDEO:
        return ContentKind.VIDEO
    return ContentKind.SHORTS if reference.is_shorts else ContentKind.VIDEO


def canonical_url(reference: AcquisitionReference) -> str:
    if reference.is_shorts:
        return f"https://www.youtube.com/shorts/{reference.reference_id}"
    return f"https://www.youtube.com/watch?v={reference.reference_id}"
