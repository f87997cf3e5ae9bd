"""
Review Crawler - offset-driven pagination over a review listing.

This module implements the pagination loop, which:
1. Builds the page URL for the current offset from a URL template
2. Fetches and processes the page into review records
3. Advances the offset by the number of records actually returned
4. Decides whether to stop (page cap, end of results, empty first page)

The run state is an immutable CrawlState threaded through the loop, so
the driver can be exercised with a fake fetcher and page processor.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from review_models import Review
from scraper_config import EMPTY_FIRST_PAGE_POLICIES

logger = logging.getLogger(__name__)

PAGINATION_PLACEHOLDER = '{PAGINATION_TOKEN}'

# Stop reasons
PAGE_CAP = 'page_cap'
END_OF_RESULTS = 'end_of_results'
EMPTY_FIRST_PAGE = 'empty_first_page'

FetchPage = Callable[[str], Awaitable[Optional[str]]]
ProcessPage = Callable[[Optional[str], str], List[Review]]


@dataclass(frozen=True)
class CrawlState:
    """Accumulated results and counters for one run."""
    offset: int = 0
    pages_fetched: int = 0
    reviews: Tuple[Review, ...] = ()
    done: bool = False
    stop_reason: Optional[str] = None


def build_page_url(url_template: str, offset: int, token_format: str = 'or{offset}') -> str:
    """
    Build the listing URL for an offset.

    The first page (offset 0) gets an empty pagination token.

    Args:
        url_template: URL containing {PAGINATION_TOKEN}
        offset: Number of reviews already seen
        token_format: Token pattern for later pages

    Returns:
        Page URL
    """
    token = '' if offset == 0 else token_format.format(offset=offset)
    return url_template.replace(PAGINATION_PLACEHOLDER, token)


def advance(state: CrawlState, page_reviews: Sequence[Review]) -> CrawlState:
    """Fold one page result into the state. The offset moves by the records returned."""
    return replace(
        state,
        offset=state.offset + len(page_reviews),
        pages_fetched=state.pages_fetched + 1,
        reviews=state.reviews + tuple(page_reviews)
    )


def decide(state: CrawlState, page_size: int, max_pages: int,
           empty_first_page: str = 'stop') -> CrawlState:
    """
    Decide whether the run is over after a page has been folded in.

    Checked in order: page cap, empty page after the first, empty first
    page (per policy).

    Args:
        state: State after advance()
        page_size: Number of reviews on the page just processed
        max_pages: Page cap
        empty_first_page: 'stop' or 'continue'

    Returns:
        The state, marked done with a stop reason if the run should end
    """
    if state.pages_fetched >= max_pages:
        return replace(state, done=True, stop_reason=PAGE_CAP)

    if page_size == 0 and state.pages_fetched > 1:
        return replace(state, done=True, stop_reason=END_OF_RESULTS)

    if page_size == 0:
        if empty_first_page == 'stop':
            logger.warning("No reviews found on the first page. Check selectors or website structure.")
            return replace(state, done=True, stop_reason=EMPTY_FIRST_PAGE)
        logger.warning("No reviews found on the first page. Trying once more.")

    return state


class ReviewCrawler:
    """
    Offset-driven review crawler.

    Fetches listing pages in increasing offset order, one at a time.
    Fetch errors are not caught: a transport failure aborts the run.
    """

    def __init__(self, fetch_page: FetchPage, process_page: ProcessPage, url_template: str,
                 max_pages: int, delay_seconds: float = 0.5, empty_first_page: str = 'stop',
                 token_format: str = 'or{offset}',
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
                 verbose_selectors: bool = False):
        """
        Initialize the review crawler.

        Args:
            fetch_page: Coroutine returning rendered HTML for a URL ('' when no cards appeared)
            process_page: Function turning (html, url) into reviews
            url_template: Listing URL containing {PAGINATION_TOKEN}
            max_pages: Maximum pages to fetch
            delay_seconds: Politeness delay before each following page
            empty_first_page: Policy when the first page is empty ('stop' or 'continue')
            token_format: Pagination token pattern for offsets > 0
            sleep: Sleep coroutine (injected in tests)
            verbose_selectors: Log HTML size per page
        """
        if max_pages < 1:
            raise ValueError(f"max_pages must be at least 1, got {max_pages}")
        if empty_first_page not in EMPTY_FIRST_PAGE_POLICIES:
            raise ValueError(f"Unknown empty_first_page policy: {empty_first_page}")

        self.fetch_page = fetch_page
        self.process_page = process_page
        self.url_template = url_template
        self.max_pages = max_pages
        self.delay_seconds = delay_seconds
        self.empty_first_page = empty_first_page
        self.token_format = token_format
        self.sleep = sleep
        self.verbose_selectors = verbose_selectors

    async def _crawl_page(self, state: CrawlState) -> Tuple[CrawlState, int]:
        """Fetch and process the page at the current offset."""
        url = build_page_url(self.url_template, state.offset, self.token_format)
        logger.info(f"Navigating to {url} (Page {state.pages_fetched + 1}/{self.max_pages})")

        html = await self.fetch_page(url)
        if self.verbose_selectors:
            logger.info(f"  HTML length: {len(html or '')}")

        page_reviews = self.process_page(html, url)
        state = advance(state, page_reviews)

        logger.info(
            f"Scraped {len(page_reviews)} reviews from {url}. "
            f"Total scraped: {len(state.reviews)}. Next offset: {state.offset}"
        )
        return state, len(page_reviews)

    async def crawl(self) -> CrawlState:
        """Main crawling loop."""
        logger.info(f"Starting review crawl for up to {self.max_pages} pages")

        state = CrawlState()
        while True:
            state, page_size = await self._crawl_page(state)
            state = decide(state, page_size, self.max_pages, self.empty_first_page)
            if state.done:
                break
            await self.sleep(self.delay_seconds)

        logger.info("=" * 60)
        logger.info("Review crawl complete!")
        logger.info(f"Pages fetched: {state.pages_fetched}")
        logger.info(f"Reviews collected: {len(state.reviews)}")
        logger.info(f"Stop reason: {state.stop_reason}")
        logger.info("=" * 60)

        return state
