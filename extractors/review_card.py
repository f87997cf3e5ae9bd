"""
Pure field extraction for a single review card.

These functions are unit-testable and don't perform I/O. They apply the
recipe's field rules to one parsed card element and return plain values.
A rule that finds nothing yields None; no rule can stop the others.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from bs4 import Tag

from recipe_loader import FieldRule, Locator

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r'\s+')
_RATING_RE = re.compile(r'([\d.]+) of')

RATING_MIN = 0.0
RATING_MAX = 5.0


def absolute_url(href: Optional[str], base_origin: str) -> Optional[str]:
    """
    Rewrite a site-relative reference into an absolute URL.

    Only references starting with ``/`` are rewritten; everything else
    (absolute URLs included) passes through unchanged.

    Args:
        href: The href attribute value
        base_origin: Scheme and host of the site, e.g. https://www.tripadvisor.com

    Returns:
        Absolute URL string, or None for a missing href
    """
    if not href:
        return None
    if href.startswith('/'):
        return f"{base_origin}{href}"
    return href


def collapse_whitespace(text: Optional[str]) -> Optional[str]:
    """Collapse whitespace runs to one space and trim."""
    if text is None:
        return None
    collapsed = _WHITESPACE_RE.sub(' ', text).strip()
    return collapsed or None


def parse_rating(text: Optional[str]) -> Optional[float]:
    """
    Parse a rating title such as "4.5 of 5 bubbles".

    Returns:
        The leading number as a float, or None if it cannot be parsed or
        falls outside 0-5
    """
    if not text:
        return None

    match = _RATING_RE.search(text)
    if not match:
        return None

    try:
        rating = float(match.group(1))
    except ValueError:
        return None

    if not RATING_MIN <= rating <= RATING_MAX:
        logger.debug(f"Rating out of range: {text!r}")
        return None
    return rating


def split_part(text: Optional[str], separator: str, part: int) -> Optional[str]:
    """Return the trimmed ``part``-th segment of ``text`` split on ``separator``."""
    if text is None:
        return None
    parts = [p.strip() for p in text.split(separator)]
    if part >= len(parts):
        return None
    return parts[part] or None


def element_value(element: Tag, attr: Optional[str] = None) -> Optional[str]:
    """
    Read an attribute or the stripped text content of an element.

    Returns:
        The value, or None if it is missing or blank
    """
    if attr:
        value = element.get(attr)
        if isinstance(value, list):
            # multi-valued attributes such as class
            value = ' '.join(value)
    else:
        value = element.get_text()

    if value is None:
        return None
    value = value.strip()
    return value or None


def find_candidate(card: Tag, locator: Locator) -> Tuple[bool, Optional[Tag], Optional[str]]:
    """
    Evaluate one candidate locator against a card.

    Returns:
        (final, element, value): ``final`` is True when no later candidate
        should be tried, either because a value was found or because the
        locator's ``within`` scope exists. ``element`` is the element the
        value came from, or None when there is no value.
    """
    root = card
    decisive = False

    if locator.within:
        root = card.select_one(locator.within)
        if root is None:
            return False, None, None
        decisive = True

    if locator.index == 0:
        element = root.select_one(locator.css)
    else:
        matches = root.select(locator.css)
        element = matches[locator.index] if len(matches) > locator.index else None

    if element is None:
        return decisive, None, None

    value = element_value(element, locator.attr)
    if value is None:
        return decisive, None, None

    if locator.marker:
        match = re.search(locator.marker, value, re.IGNORECASE)
        if not match:
            return decisive, None, None
        value = (value[:match.start()] + value[match.end():]).strip() or None

    if value is None:
        return decisive, None, None
    return True, element, value


def apply_locator(card: Tag, locator: Locator) -> Tuple[bool, Optional[str]]:
    """Evaluate one candidate locator, returning ``(final, value)``."""
    final, _, value = find_candidate(card, locator)
    return final, value


def apply_transform(value: Optional[str], transform: Optional[str], base_origin: str) -> Any:
    if transform == 'collapse_whitespace':
        return collapse_whitespace(value)
    if transform == 'absolute_url':
        return absolute_url(value, base_origin)
    if transform == 'rating':
        return parse_rating(value)
    return value


def apply_rule(card: Tag, rule: FieldRule, base_origin: str) -> Dict[str, Any]:
    """
    Apply one field rule: first matching candidate, then split, then transform.

    Paired fields are read from the element that produced the rule's
    value, and are None when no candidate produced one.

    Args:
        card: Parsed review card element
        rule: Field rule from the recipe
        base_origin: Site origin used by the absolute_url transform

    Returns:
        Dict mapping the rule's output names to values (None when not found)
    """
    element, value = None, None
    for locator in rule.candidates:
        final, element, value = find_candidate(card, locator)
        if final:
            break

    if value is not None and rule.split:
        value = split_part(value, rule.split, rule.part)

    values = {rule.name: apply_transform(value, rule.transform, base_origin)}
    for paired in rule.paired:
        raw = element_value(element, paired.attr) if element is not None else None
        values[paired.name] = apply_transform(raw, paired.transform, base_origin)
    return values


def extract_review(card: Tag, rules: List[FieldRule], base_origin: str) -> Dict[str, Any]:
    """
    Extract every configured field from a review card.

    Each rule is evaluated independently. A rule that raises is logged
    and yields None for its own outputs only.

    Args:
        card: Parsed review card element
        rules: Ordered field rules from the recipe
        base_origin: Site origin for relative links

    Returns:
        Dict mapping field name to value (None when not found)
    """
    fields: Dict[str, Any] = {}

    for rule in rules:
        try:
            fields.update(apply_rule(card, rule, base_origin))
        except Exception as e:
            logger.warning(f"Rule '{rule.name}' failed: {e}")
            fields.update(dict.fromkeys(rule.output_names()))

        for name in rule.output_names():
            if fields[name] is None:
                logger.debug(f"  No value for '{name}'")

    return fields
