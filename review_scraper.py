"""
Review Scraper

Scrapes a paginated review listing with a headless browser, extracts
structured review records and writes the identifiable ones to a store
that ignores duplicate unique_ids.

- One browser session per run, released on every exit path
- Pagination driven by the number of reviews each page returned
- Supabase for deployments, a local JSON store for ad-hoc runs
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import yaml

from browser_session import BrowserSession, TransportError
from extractors.review_page import process_page, count_cards
from persistence import JSONReviewStore, ReviewStore, StoreError, SupabaseReviewStore
from recipe_loader import ReviewRecipe, load_recipe
from review_crawler import ReviewCrawler
from review_models import Review, ScrapeSummary
from scraper_config import ConfigError, ScrapeConfig, EMPTY_FIRST_PAGE_POLICIES, load_config

logger = logging.getLogger(__name__)

NO_REVIEWS_MESSAGE = "No reviews found or scraping failed overall."
NO_REVIEWS_DETAILS = "No reviews were collected from TripAdvisor."
NO_IDS_MESSAGE = "No reviews with valid unique identifiers to process."
DRY_RUN_MESSAGE = "Scraping completed. Dry run, nothing was written."
SUCCESS_MESSAGE = "Scraping and Supabase processing completed."


def split_writable(reviews: Sequence[Review]) -> Tuple[List[Review], int]:
    """
    Separate reviews that can be written from those without a unique_id.

    Returns:
        (writable reviews in original order, number excluded)
    """
    writable = [review for review in reviews if review.unique_id]
    return writable, len(reviews) - len(writable)


def build_store(config: ScrapeConfig, output_dir: Optional[str] = None) -> ReviewStore:
    """Local JSON store when an output directory is given, Supabase otherwise."""
    if output_dir:
        return JSONReviewStore(output_dir)
    if not config.has_store:
        raise ConfigError("Supabase URL or Anon Key not provided.")
    return SupabaseReviewStore(config.supabase_url, config.supabase_key, config.supabase_table)


async def run_scrape(config: ScrapeConfig, store: Optional[ReviewStore] = None,
                     recipe: Optional[ReviewRecipe] = None, session_factory=BrowserSession,
                     sleep=asyncio.sleep, dry_run: bool = False,
                     verbose_selectors: bool = False) -> ScrapeSummary:
    """
    Run one complete scrape: crawl, filter, write.

    Args:
        config: Validated scrape settings
        store: Destination for identifiable reviews (not needed for dry runs)
        recipe: Markup recipe (None = load config.recipe_path)
        session_factory: Callable(config, ready_selector) returning an async browser session
        sleep: Sleep coroutine used for the politeness delay
        dry_run: Crawl and report without writing
        verbose_selectors: Log card counts for every page

    Returns:
        Run summary

    Raises:
        TransportError: If the browser session or a navigation fails
        StoreError: If the bulk write fails
    """
    if store is None and not dry_run:
        raise ValueError("A store is required unless dry_run is set")

    recipe = recipe or load_recipe(config.recipe_path)
    url_template = config.url_template or recipe.url_template

    def handle_page(html: Optional[str], url: str) -> List[Review]:
        if verbose_selectors and html:
            logger.info(f"  Selector '{recipe.card_css}' matched {count_cards(html, recipe)} elements")
        return process_page(html, url, recipe)

    async with session_factory(config, recipe.card_css) as session:
        crawler = ReviewCrawler(
            fetch_page=session.fetch,
            process_page=handle_page,
            url_template=url_template,
            max_pages=config.max_pages,
            delay_seconds=config.delay_seconds,
            empty_first_page=config.empty_first_page,
            token_format=recipe.pagination_token,
            sleep=sleep
        )
        state = await crawler.crawl()

    reviews = list(state.reviews)
    counts = dict(pages_fetched=state.pages_fetched, stop_reason=state.stop_reason)

    if not reviews:
        return ScrapeSummary(message=NO_REVIEWS_MESSAGE, details=NO_REVIEWS_DETAILS, **counts)

    writable, skipped = split_writable(reviews)
    counts.update(scraped_count=len(reviews), eligible_count=len(writable), skipped_count=skipped)
    if skipped:
        logger.warning(f"{skipped} reviews were missing essential data for a unique ID and will be skipped.")

    if not writable:
        return ScrapeSummary(message=NO_IDS_MESSAGE, **counts)

    if dry_run:
        return ScrapeSummary(message=DRY_RUN_MESSAGE, **counts)

    accepted = await store.insert_new(writable)
    logger.info(f"Store processing successful. Rows accepted: {accepted} of {len(writable)}")
    return ScrapeSummary(message=SUCCESS_MESSAGE, accepted_count=accepted, **counts)


async def dump_html(url: str, config: ScrapeConfig, recipe: ReviewRecipe,
                    output_file: str = "debug_dump.html", session_factory=BrowserSession) -> Path:
    """Save the rendered HTML of one URL for selector debugging."""
    async with session_factory(config, recipe.card_css) as session:
        html = await session.fetch(url, wait=False)

    path = Path(output_file)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(html)
    logger.info(f"HTML saved to: {path} ({count_cards(html, recipe)} review cards)")
    return path


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description='Scrape a paginated review listing into a store',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scrape into Supabase (SUPABASE_URL / SUPABASE_ANON_KEY)
  python review_scraper.py

  # Scrape into a local JSON store
  python review_scraper.py --output output/reviews

  # Debug tools
  python review_scraper.py --dry-run --verbose-selectors --max-pages 1
  python review_scraper.py --dump-html https://www.tripadvisor.com/...
        """
    )

    parser.add_argument('--recipe', help='Recipe YAML file (default: bundled TripAdvisor recipe)')
    parser.add_argument('--max-pages', type=int, help='Maximum listing pages to fetch')
    parser.add_argument('--delay', type=float, help='Seconds to wait between pages')
    parser.add_argument('--empty-first-page', choices=EMPTY_FIRST_PAGE_POLICIES,
                        help='What to do when the first page has no reviews')
    parser.add_argument('--output', help='Write to a JSON store in this directory instead of Supabase')

    # Browser options
    parser.add_argument('--headless', action='store_true', help='Run local browser in headless mode')
    parser.add_argument('--visible', action='store_true', help='Run local browser in visible mode')

    # Debug options
    parser.add_argument('--dry-run', action='store_true', help='Crawl and report without writing')
    parser.add_argument('--verbose-selectors', action='store_true',
                        help='Log review card match counts per page')
    parser.add_argument('--force', action='store_true',
                        help='Clear the local JSON store before writing (with --output)')
    parser.add_argument('--dump-html', metavar='URL', help='Dump rendered HTML for a URL and exit')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    # Determine headless mode
    headless = None
    if args.headless:
        headless = True
    elif args.visible:
        headless = False

    needs_store = not (args.dry_run or args.output or args.dump_html)

    try:
        config = load_config(
            require_store=needs_store,
            max_pages=args.max_pages,
            delay_seconds=args.delay,
            empty_first_page=args.empty_first_page,
            headless=headless,
            recipe_path=args.recipe
        )
        recipe = load_recipe(config.recipe_path)

        if args.dump_html:
            asyncio.run(dump_html(args.dump_html, config, recipe))
            return

        store = None
        if not args.dry_run:
            store = build_store(config, args.output)
            if args.force and isinstance(store, JSONReviewStore):
                logger.info("Force flag set - clearing existing store")
                store.clear()

        summary = asyncio.run(run_scrape(
            config,
            store=store,
            recipe=recipe,
            dry_run=args.dry_run,
            verbose_selectors=args.verbose_selectors
        ))
    except (ConfigError, FileNotFoundError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    except (TransportError, StoreError) as e:
        logger.error(f"Scrape failed: {e}")
        sys.exit(1)

    print(json.dumps(summary.to_payload(), indent=2))


if __name__ == "__main__":
    main()
