"""
View Aggregator

Periodically folds the pending view counters held in the cache into the
durable view_count column.

Architecture:
- Redirects INCR a per-code counter in the cache (cheap, atomic)
- Every views_sync_interval seconds this worker sweeps the counters
- Each sweep uses its own database session
- Exactly one aggregator may run: inside the API process
  (run_view_aggregator=True) or as this module's dedicated process
"""

import asyncio
import logging
import signal
import sys

from shortlink_app.cache.strategies import CacheStrategy
from shortlink_app.config import settings
from shortlink_app.database.connection import SessionLocal
from shortlink_app.exceptions import SyncFailureError
from shortlink_app.services.url_service import URLService
from shortlink_app.storage.strategies import SQLAlchemyURLStorage

logger = logging.getLogger(__name__)


class ViewAggregator:
    """
    Background view aggregator.

    Features:
    - Fixed-interval sweeps, independent of request traffic
    - A failed sweep is logged and retried by the next tick
    - Final sweep on stop so pending counts reach the database
    """

    def __init__(
        self,
        cache: CacheStrategy,
        db_session_factory=SessionLocal,
        interval: float = settings.views_sync_interval,
        batch_size: int = settings.views_sync_batch_size
    ):
        """
        Initialize aggregator with dependencies.

        Args:
            cache: Cache strategy holding the pending counters
            db_session_factory: Factory for creating database sessions
            interval: Seconds between sweeps
            batch_size: Keys requested per scan call
        """
        self.cache = cache
        self.db_session_factory = db_session_factory
        self.interval = interval
        self.batch_size = batch_size
        self.running = False
        self.total_flushed = 0
        self._stop_event = None

    async def run_once(self) -> int:
        """
        Run a single sweep.

        Returns:
            Number of views persisted

        Raises:
            SyncFailureError: the sweep was aborted part-way
        """
        db = self.db_session_factory()
        try:
            service = URLService(SQLAlchemyURLStorage(db), self.cache)
            flushed = await service.sync_views_to_db(batch_size=self.batch_size)
        finally:
            db.close()

        self.total_flushed += flushed
        if flushed:
            logger.info("Persisted %d views (total %d)", flushed, self.total_flushed)
        return flushed

    async def start(self):
        """
        Sweep every `interval` seconds until stop() is called.

        stop() only cuts the wait between sweeps short; a sweep in progress
        always runs to completion. Do not cancel this task.
        """
        self.running = True
        self._stop_event = asyncio.Event()
        logger.info("View aggregator started (interval=%ss, batch=%d)", self.interval, self.batch_size)

        while self.running:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            if not self.running:
                break

            try:
                await self.run_once()
            except SyncFailureError as e:
                # Remaining counters stay in the cache for the next tick
                logger.error("View sync failed: %s", e)
            except Exception:
                logger.exception("Unexpected error in view aggregator")

        try:
            await self.run_once()
        except SyncFailureError as e:
            logger.error("Final view sync failed: %s", e)
        except Exception:
            logger.exception("Unexpected error in final view sync")

        self.running = False
        logger.info("View aggregator stopped")

    def stop(self):
        """Wake the loop and stop after the current sweep"""
        self.running = False
        if self._stop_event is not None:
            self._stop_event.set()


async def main():
    """
    Main entry point for the dedicated aggregator process.

    Usage:
        RUN_VIEW_AGGREGATOR=false uvicorn main:app   # API processes
        python -m shortlink_app.hit_processor.view_aggregator
    """
    from shortlink_app.cache.factory import CacheFactory, CacheBackend
    from shortlink_app.database.connection import Base, engine
    from shortlink_app.logging_config import setup_logging

    setup_logging(settings.log_level)
    logger.info("Environment: %s, cache backend: %s", settings.environment, settings.cache_backend)

    Base.metadata.create_all(bind=engine)
    cache = CacheFactory.create(CacheBackend(settings.cache_backend))
    aggregator = ViewAggregator(cache=cache)

    loop = asyncio.get_running_loop()
    task = asyncio.create_task(aggregator.start())
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, aggregator.stop)

    try:
        await task
    finally:
        await cache.close()
        engine.dispose()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except Exception:
        logger.exception("Fatal error in view aggregator")
        sys.exit(1)
