"""Parse counts out of the free-text summaries the UI renders.

The resource screen reports selection and totals as prose whose wording
depends on the locale ("3 個のリソースが選択されています", "3 selected",
"1 / 3 ページ (全 25 件)", "Page 1 / 3 (25 total)"). These helpers never
raise: missing numbers parse as 0 (or ``None`` for the page position).
"""
from __future__ import annotations

import re
from typing import Optional, Sequence, Tuple

SELECTED_PATTERNS: Sequence[re.Pattern] = (
    re.compile(r"(\d+)\s*個の(?:リソース|項目)が選択されています"),
    re.compile(r"選択中\s*[:：]?\s*(\d+)"),
    re.compile(r"(\d+)\s*件?\s*(?:を)?選択(?:中|済み?)"),
    re.compile(r"(\d+)\s+(?:resources?\s+|items?\s+)?selected", re.IGNORECASE),
    re.compile(r"selected\s*[:：]?\s*(\d+)", re.IGNORECASE),
)

TOTAL_PATTERNS: Sequence[re.Pattern] = (
    re.compile(r"全\s*(\d+)\s*件"),
    re.compile(r"(\d+)\s*件中"),
    re.compile(r"(\d+)\s+(?:total|results?|resources|items)\b", re.IGNORECASE),
    re.compile(r"total\s*[:：]?\s*(\d+)", re.IGNORECASE),
    re.compile(r"of\s+(\d+)\b", re.IGNORECASE),
)

PAGE_POSITION = re.compile(r"(\d+)\s*/\s*(\d+)\s*(?:ページ|pages?\b)?", re.IGNORECASE)

_ANY_NUMBER = re.compile(r"(\d+)")


def _first_match(text: str, patterns: Sequence[re.Pattern]) -> Optional[int]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None


def parse_selected_count(text: Optional[str]) -> int:
    """Number of selected resources in a selection summary, 0 if absent."""
    if not text:
        return 0
    count = _first_match(text, SELECTED_PATTERNS)
    if count is not None:
        return count
    # Summaries like "3件" carry only the number.
    match = _ANY_NUMBER.search(text)
    return int(match.group(1)) if match else 0


def parse_total_count(text: Optional[str]) -> Optional[int]:
    """Total resource count from a pagination summary, ``None`` if not stated."""
    if not text:
        return None
    return _first_match(text, TOTAL_PATTERNS)


def parse_page_position(text: Optional[str]) -> Optional[Tuple[int, int]]:
    """``(current, total)`` from an "N / M pages" string."""
    if not text:
        return None
    match = PAGE_POSITION.search(text)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))
