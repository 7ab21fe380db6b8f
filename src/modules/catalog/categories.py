"""Keyword classification of legacy service names.

Only the one-time ``backfill_service_categories`` command uses this.
Request handling reads ``Service.category`` and never guesses.
"""

from __future__ import annotations

import re
from typing import Iterable

from modules.catalog.models import ServiceCategory

_CATEGORY_TAG = re.compile(r"\[CATEGORY:([A-Z_]+)\]")

_KEYWORDS: tuple[tuple[ServiceCategory, tuple[str, ...]], ...] = (
    (ServiceCategory.DRY_CLEANING, ("dry", "clean")),
    (ServiceCategory.LAUNDRY, ("laundry", "wash")),
    (ServiceCategory.ALTERATIONS, ("alter", "tailor")),
)


def infer_category(*texts: str) -> ServiceCategory:
    """Classify a service from its name/description.

    An explicit ``[CATEGORY:XXX]`` tag wins; otherwise the first keyword
    group found at a word start in any of *texts* decides
    ("laundry" is not "dry"); otherwise ``OTHER``.
    """
    for text in texts:
        match = _CATEGORY_TAG.search(text or "")
        if match and match.group(1) in ServiceCategory.values:
            return ServiceCategory(match.group(1))

    lowered = " ".join(text.lower() for text in texts if text)
    for category, keywords in _KEYWORDS:
        if _contains_any(lowered, keywords):
            return category
    return ServiceCategory.OTHER


def strip_category_tag(text: str) -> str:
    """Remove a ``[CATEGORY:XXX]`` tag left in legacy descriptions."""
    return _CATEGORY_TAG.sub("", text or "").strip()


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(re.search(rf"\b{re.escape(keyword)}", text) for keyword in keywords)
