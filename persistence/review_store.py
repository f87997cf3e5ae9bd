"""
Review stores.

Every store implements one conflict-tolerant bulk write keyed by
unique_id: new keys are inserted, existing keys are left untouched
(first write wins). The return value is the number of rows accepted.
"""

from typing import Any, Optional, Protocol, Sequence, Set
from pathlib import Path
import json
import logging

from curl_cffi.requests import AsyncSession
from curl_cffi.requests import exceptions as requests_exceptions

from review_models import Review

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """The bulk write failed. Carries the store's own error message."""


class ReviewStore(Protocol):
    """
    Abstract interface for review storage.

    This allows the pipeline to write to Supabase in production and to a
    local JSON store (or a fake in tests) without code changes.
    """

    async def insert_new(self, reviews: Sequence[Review]) -> int:
        """Insert reviews whose unique_id is new; return the accepted count."""
        ...


class SupabaseReviewStore:
    """
    Supabase (PostgREST) implementation of ReviewStore.

    Sends one bulk insert with ``on_conflict=unique_id`` and
    ``resolution=ignore-duplicates``, so duplicates are skipped by the
    database and only inserted rows come back.
    """

    def __init__(self, url: str, key: str, table: str = "reviews",
                 conflict_column: str = "unique_id", timeout: float = 60,
                 session_factory=AsyncSession):
        """
        Initialize the Supabase store.

        Args:
            url: Project URL, e.g. https://xyz.supabase.co
            key: API key (anon or service role)
            table: Target table
            conflict_column: Natural key column with a unique constraint
            timeout: Request timeout in seconds
            session_factory: Callable returning an async HTTP session
        """
        self.url = url.rstrip('/')
        self.key = key
        self.table = table
        self.conflict_column = conflict_column
        self.timeout = timeout
        self._session_factory = session_factory

    @property
    def endpoint(self) -> str:
        return f"{self.url}/rest/v1/{self.table}"

    def _headers(self) -> dict:
        return {
            'apikey': self.key,
            'Authorization': f"Bearer {self.key}",
            'Content-Type': 'application/json',
            'Prefer': 'resolution=ignore-duplicates,return=representation',
        }

    async def insert_new(self, reviews: Sequence[Review]) -> int:
        """
        Bulk insert reviews, ignoring existing unique_ids.

        Raises:
            StoreError: On a transport failure or an error response
        """
        if not reviews:
            return 0

        rows = [review.to_row() for review in reviews]
        logger.info(f"Attempting to insert {len(rows)} reviews into '{self.table}'")

        try:
            async with self._session_factory() as http:
                response = await http.post(
                    self.endpoint,
                    params={'on_conflict': self.conflict_column},
                    json=rows,
                    headers=self._headers(),
                    timeout=self.timeout
                )
        except requests_exceptions.RequestException as e:
            raise StoreError(f"Supabase request failed: {e}") from e

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(f"Supabase insert error ({response.status_code}): {message}")
            raise StoreError(message)

        data = response.json() if response.text else []
        accepted = len(data) if isinstance(data, list) else 0
        logger.info(f"Supabase accepted {accepted} of {len(rows)} reviews")
        return accepted


def _error_message(response: Any) -> str:
    """Pull the message out of a PostgREST error body."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get('message'):
        return body['message']
    return response.text or f"HTTP {response.status_code}"


class JSONReviewStore:
    """
    JSON-based implementation of ReviewStore.

    Uses a JSON file for the set of seen unique_ids and JSONL for the
    append-only review log.
    """

    def __init__(self, output_dir: str = "output"):
        """
        Initialize the JSON review store.

        Args:
            output_dir: Directory for output files
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.seen_ids_file = self.output_dir / "seen_review_ids.json"
        self.reviews_log_file = self.output_dir / "reviews.jsonl"

        self.seen_ids: Set[str] = set()
        self._load_state()

    def _load_state(self) -> None:
        """Load existing state from disk."""
        if self.seen_ids_file.exists():
            try:
                with open(self.seen_ids_file, 'r', encoding='utf-8') as f:
                    self.seen_ids = set(json.load(f))
            except (OSError, ValueError) as e:
                logger.warning(f"Could not load seen review ids: {e}")

    def has_seen(self, unique_id: Optional[str]) -> bool:
        return unique_id in self.seen_ids

    async def insert_new(self, reviews: Sequence[Review]) -> int:
        """Append reviews with unseen unique_ids to the log; return how many were added."""
        accepted = 0

        with open(self.reviews_log_file, 'a', encoding='utf-8') as f:
            for review in reviews:
                if not review.unique_id or review.unique_id in self.seen_ids:
                    continue
                self.seen_ids.add(review.unique_id)
                f.write(json.dumps(review.to_row(), ensure_ascii=False) + '\n')
                accepted += 1

        self.save()
        logger.info(f"Stored {accepted} new reviews in {self.reviews_log_file}")
        return accepted

    def get_seen_count(self) -> int:
        return len(self.seen_ids)

    def save(self) -> None:
        """Persist state to disk."""
        with open(self.seen_ids_file, 'w', encoding='utf-8') as f:
            json.dump(sorted(self.seen_ids), f, indent=2)

    def clear(self) -> None:
        """Clear all state (useful for --force flag)."""
        self.seen_ids.clear()

        for file in [self.seen_ids_file, self.reviews_log_file]:
            if file.exists():
                file.unlink()
