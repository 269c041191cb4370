import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import settings
from shortlink_app.exceptions import (
    ConflictError,
    InvalidPageError,
    RetriesExhaustedError,
    ShortLinkError,
    SyncFailureError,
)
from shortlink_app.schemas.url import URLItem, URLListResponse
from shortlink_app.services.short_code_factory import ShortCodeFactory
from shortlink_app.services.short_code_strategies import ShortCodeStrategy
from shortlink_app.storage.strategies import URLStorageStrategy

logger = logging.getLogger(__name__)


class URLService:
    """
    URL Service with dependency injection for storage and cache.

    This follows the Dependency Injection pattern:
    - Storage and cache strategies are injected (not created internally)
    - Easy to test (inject spies or in-memory backends)
    - Stateless: one instance per request, safe to run many concurrently

    No locks are taken here. Code uniqueness rests on the storage unique
    constraint and view counting on the cache's atomic increment.
    """

    def __init__(
        self,
        storage: URLStorageStrategy,
        cache: CacheStrategy,
        short_code_strategy: Optional[ShortCodeStrategy] = None
    ):
        """
        Initialize URL service with dependencies.

        Args:
            storage: Durable record storage
            cache: Cache strategy holding URL mappings and pending view counters
            short_code_strategy: Code generator (defaults to the configured random strategy)
        """
        self.storage = storage
        self.cache = cache
        # Use provided strategy or create default from factory
        self.short_code_strategy = short_code_strategy or ShortCodeFactory.create_strategy()

    def _short_url(self, short_code: str) -> str:
        return f"{settings.base_url}/{short_code}"

    def _allocate_code(self) -> str:
        """
        Find a free random code.

        Iterative and bounded: at most max_retries candidates are generated
        and checked, then RetriesExhaustedError.
        """
        for attempt in range(1, settings.max_retries + 1):
            candidate = self.short_code_strategy.generate()
            if self.storage.is_code_available(candidate):
                return candidate
            logger.debug("Short code collision on attempt %d: %s", attempt, candidate)

        raise RetriesExhaustedError(
            f"Could not generate unique short code after {settings.max_retries} attempts"
        )

    async def create_url(
        self,
        original_url: str,
        custom_code: Optional[str] = None,
        duration: Optional[int] = None,
        owner_id: Optional[int] = None
    ) -> str:
        """Create a new short URL and return its public link.

        Process:
        1. Claim the custom code, or allocate a random one
        2. Compute expiry (duration in hours, or the configured default)
        3. Persist the record (the unique constraint settles races)
        4. Write the mapping through to the cache

        Raises:
            ConflictError: custom_code is taken
            RetriesExhaustedError: no free random code within the attempt limit
            TransientIOError: storage or cache unavailable
        """
        if custom_code:
            if not self.storage.is_code_available(custom_code):
                raise ConflictError(f"Short code '{custom_code}' is already in use")
            short_code = custom_code
            is_custom = True
        else:
            short_code = self._allocate_code()
            is_custom = False

        hours = duration if duration is not None else settings.default_duration_hours
        expires_at = datetime.now(timezone.utc) + timedelta(hours=hours)

        self.storage.create_record(
            original_url=original_url,
            short_code=short_code,
            is_custom=is_custom,
            expires_at=expires_at,
            owner_id=owner_id
        )

        # Write-through so the first redirect is a cache hit
        await self.cache.set_url(short_code, original_url)

        logger.info("Created short code %s (custom=%s, owner=%s)", short_code, is_custom, owner_id)
        return self._short_url(short_code)

    async def get_url(self, short_code: str) -> str:
        """
        Resolve a short code using the Cache-Aside pattern.

        This is the redirect hot path: a cache hit never touches storage.

        Flow:
        1. Check cache first
        2. On miss, read storage (NotFoundError if absent or expired)
        3. Populate cache for next time
        """
        cached_url = await self.cache.get_url(short_code)
        if cached_url:
            return cached_url

        record = self.storage.get_by_code(short_code)

        await self.cache.set_url(short_code, record.original_url)
        return record.original_url

    async def incre_views(self, short_code: str) -> None:
        """
        Count one redirect. Fire-and-forget.

        Runs after the redirect response is sent. Failures are logged and
        dropped; counting must never delay or fail a redirect.
        """
        try:
            await self.cache.incr_views(short_code)
        except Exception:
            logger.warning("Failed to count view for %s", short_code, exc_info=True)

    async def get_urls(self, owner_id: Optional[int], page: int = 1, size: int = 10) -> URLListResponse:
        """
        List an owner's links, oldest first.

        Each row's views is the persisted count plus the pending cache
        counter, so listings are current without waiting for a sweep.
        """
        if page < 1 or size < 1:
            raise InvalidPageError(f"page and size must be positive, got page={page} size={size}")

        rows, total = self.storage.list_by_owner(owner_id, limit=size, offset=(page - 1) * size)

        items = []
        for row in rows:
            pending = await self.cache.get_views(row.short_code)
            items.append(URLItem(
                id=row.id,
                original_url=row.original_url,
                short_url=self._short_url(row.short_code),
                expires_at=row.expires_at,
                is_custom=row.is_custom,
                views=row.view_count + pending
            ))

        return URLListResponse(items=items, total=total)

    async def delete_url(self, short_code: str) -> None:
        """
        Delete a short URL, its cached mapping and its pending counter.

        The cache steps are idempotent, so a repeated delete fails only at
        the storage step with NotFoundError.
        """
        self.storage.delete_by_code(short_code)
        await self.cache.del_url(short_code)
        await self.cache.del_views(short_code)
        logger.info("Deleted short code %s", short_code)

    async def update_url_duration(self, short_code: str, expires_at: datetime) -> None:
        """
        Change a link's expiry in storage.

        The cached mapping is left alone and may keep redirecting until its
        own TTL (url_cache_ttl) lapses.
        """
        self.storage.update_expiry_by_code(short_code, expires_at)

    async def sync_views_to_db(self, batch_size: int = 100) -> int:
        """
        One aggregation sweep: fold pending cache counters into storage.

        Per counter the durable add happens first and the counter is drained
        by the same amount only afterwards. A crash in between re-adds that
        amount on the next sweep (double count) instead of losing it. Views
        arriving mid-sweep survive the drain.

        Not safe to run from two processes at once: both could read the same
        counter and add it twice.

        Returns:
            Number of views persisted

        Raises:
            SyncFailureError: a cache or storage step failed; the rest of
                the sweep is abandoned and the next sweep picks it up
        """
        cursor = 0
        flushed = 0
        while True:
            try:
                codes, cursor = await self.cache.scan_views(cursor, batch_size)

                for short_code in codes:
                    views = await self.cache.get_views(short_code)
                    if views == 0:
                        continue

                    self.storage.add_views(short_code, views)
                    await self.cache.drain_views(short_code, views)
                    flushed += views
            except ShortLinkError as e:
                raise SyncFailureError(f"View sync aborted after {flushed} views: {e}") from e

            if cursor == 0:
                break

        return flushed
