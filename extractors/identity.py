"""
Natural key for review records.

The store deduplicates on this key, so it must be a pure function of
the reviewer name and the written-date text.
"""

import re
from typing import Optional

_WHITESPACE_RE = re.compile(r'\s+')


def make_unique_id(reviewer_name: Optional[str], written_date: Optional[str]) -> Optional[str]:
    """
    Build the unique_id for a review.

    Two reviews by reviewers with the same display name and the same
    written-date text collide; that is accepted.

    Args:
        reviewer_name: Extracted reviewer display name
        written_date: Extracted written-date text

    Returns:
        Lower-cased ``name_date`` with whitespace runs replaced by ``_``,
        or None if either part is missing or blank
    """
    if not reviewer_name or not reviewer_name.strip():
        return None
    if not written_date or not written_date.strip():
        return None

    combined = f"{reviewer_name}_{written_date}"
    return _WHITESPACE_RE.sub('_', combined).lower()
