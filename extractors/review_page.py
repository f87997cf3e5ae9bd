"""
Page-level processing for review listings.

Turns the rendered HTML of one listing page into review records. A page
that cannot be parsed, or that has no review cards, yields an empty
list; the caller decides what an empty page means.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup
from pydantic import ValidationError

from recipe_loader import ReviewRecipe
from review_models import Review
from .identity import make_unique_id
from .review_card import extract_review

logger = logging.getLogger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_html(html: str, recipe: ReviewRecipe) -> Optional[BeautifulSoup]:
    """Parse markup with the recipe's parser, returning None on failure."""
    try:
        return BeautifulSoup(html, recipe.parser)
    except Exception as e:
        logger.error(f"Failed to parse HTML document: {e}")
        return None


def process_page(html: Optional[str], source_url: str, recipe: ReviewRecipe,
                 now: Optional[Callable[[], str]] = None) -> List[Review]:
    """
    Extract all review records from one page.

    Args:
        html: Rendered page HTML (empty or None when nothing was retrieved)
        source_url: URL the HTML came from, stamped onto every record
        recipe: Recipe with the card selector and field rules
        now: Clock returning an ISO timestamp (default: current UTC time)

    Returns:
        Reviews in document order; unidentifiable ones are included with
        unique_id set to None
    """
    clock = now or _utc_now

    if not html:
        logger.info(f"No HTML content was retrieved for {source_url}")
        return []

    soup = parse_html(html, recipe)
    if soup is None:
        return []

    cards = soup.select(recipe.card_css)
    logger.info(f"Found {len(cards)} review cards in the parsed HTML for {source_url}")

    reviews = []
    for card in cards:
        fields = extract_review(card, recipe.fields, recipe.base_origin)

        unique_id = make_unique_id(fields.get('reviewer_name'), fields.get('written_date'))
        if unique_id is None:
            logger.warning(f"Missing reviewer_name or written_date for unique_id on {source_url}")

        fields = {name: value for name, value in fields.items() if name in Review.model_fields}
        fields.update(unique_id=unique_id, source_url=source_url, scraped_at=clock())
        reviews.append(build_review(fields))

    return reviews


def build_review(fields: Dict[str, Any]) -> Review:
    """
    Create a Review, nulling any field the model rejects.

    A recipe rule without the right transform (e.g. rating text that was
    never parsed) must not cost the whole card.
    """
    try:
        return Review(**fields)
    except ValidationError as e:
        invalid = {err['loc'][0] for err in e.errors() if err.get('loc')}
        logger.warning(f"Dropping invalid values for {', '.join(sorted(map(str, invalid)))}")
        return Review(**{name: (None if name in invalid else value) for name, value in fields.items()})


def count_cards(html: str, recipe: ReviewRecipe) -> int:
    """
    Count review cards in a page.
    Useful for debugging and verbose mode.
    """
    soup = parse_html(html, recipe)
    if soup is None:
        return 0
    return len(soup.select(recipe.card_css))
