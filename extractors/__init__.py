"""
Extractors for review listing pages.

This package contains pure, unit-testable functions that turn rendered
review listing HTML into review records.
"""

from .identity import make_unique_id
from .review_card import (
    absolute_url,
    collapse_whitespace,
    parse_rating,
    extract_review
)
from .review_page import process_page, count_cards

__all__ = [
    'make_unique_id',
    'absolute_url',
    'collapse_whitespace',
    'parse_rating',
    'extract_review',
    'process_page',
    'count_cards'
]
