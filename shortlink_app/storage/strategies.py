"""
URL storage strategies using Strategy Pattern.

The storage strategy is the durable home of short URL records. The service
layer talks to this interface only, so tests can substitute a spy and
deployments can swap the SQL backend through database_url alone.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shortlink_app.exceptions import ConflictError, NotFoundError, TransientIOError
from shortlink_app.models.url import ShortURL

logger = logging.getLogger(__name__)


class URLStorageStrategy(ABC):
    """
    Abstract base class for URL storage strategies.

    Pattern: Strategy Pattern
    Similar to: Django's database backends, repository objects in DDD
    """

    @abstractmethod
    def create_record(
        self,
        original_url: str,
        short_code: str,
        is_custom: bool,
        expires_at: datetime,
        owner_id: Optional[int]
    ) -> ShortURL:
        """
        Persist a new short URL record.

        Raises:
            ConflictError: If short_code is already taken
        """
        pass

    @abstractmethod
    def is_code_available(self, short_code: str) -> bool:
        """Return True when no record uses short_code."""
        pass

    @abstractmethod
    def get_by_code(self, short_code: str) -> ShortURL:
        """
        Get a live (unexpired) record by short code.

        Raises:
            NotFoundError: If no live record exists
        """
        pass

    @abstractmethod
    def delete_by_code(self, short_code: str) -> None:
        """
        Delete a record.

        Raises:
            NotFoundError: If no record exists
        """
        pass

    @abstractmethod
    def update_expiry_by_code(self, short_code: str, expires_at: datetime) -> None:
        """
        Change a record's expiry.

        Raises:
            NotFoundError: If no record exists
        """
        pass

    @abstractmethod
    def add_views(self, short_code: str, delta: int) -> None:
        """Add delta to the record's durable view_count."""
        pass

    @abstractmethod
    def list_by_owner(
        self,
        owner_id: Optional[int],
        limit: int,
        offset: int
    ) -> Tuple[List[ShortURL], int]:
        """
        List an owner's records in creation order.

        Returns:
            (rows for the requested window, total rows for the owner)
        """
        pass


class SQLAlchemyURLStorage(URLStorageStrategy):
    """
    SQLAlchemy implementation for URL storage.

    Works against any database SQLAlchemy supports (SQLite for development,
    PostgreSQL in production). Failed statements roll the session back so
    it stays usable, and driver errors surface as TransientIOError.
    """

    def __init__(self, db: Session):
        """
        Initialize storage over a session.

        Args:
            db: SQLAlchemy session (request-scoped or per aggregation sweep)
        """
        self.db = db

    def create_record(
        self,
        original_url: str,
        short_code: str,
        is_custom: bool,
        expires_at: datetime,
        owner_id: Optional[int]
    ) -> ShortURL:
        record = ShortURL(
            original_url=original_url,
            short_code=short_code,
            is_custom=is_custom,
            expires_at=expires_at,
            owner_id=owner_id,
            view_count=0
        )
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except IntegrityError as e:
            # Unique constraint won a race the availability check lost
            self.db.rollback()
            raise ConflictError(f"Short code '{short_code}' is already in use") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransientIOError(f"Failed to create record for '{short_code}': {e}") from e
        return record

    def is_code_available(self, short_code: str) -> bool:
        try:
            existing = self.db.query(ShortURL.id).filter(ShortURL.short_code == short_code).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransientIOError(f"Failed to check availability of '{short_code}': {e}") from e
        return existing is None

    def get_by_code(self, short_code: str) -> ShortURL:
        try:
            record = self.db.query(ShortURL).filter(
                ShortURL.short_code == short_code,
                ShortURL.expires_at > datetime.now(timezone.utc)
            ).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransientIOError(f"Failed to read '{short_code}': {e}") from e

        if record is None:
            raise NotFoundError(f"Short code '{short_code}' not found")
        return record

    def delete_by_code(self, short_code: str) -> None:
        try:
            deleted = self.db.query(ShortURL).filter(
                ShortURL.short_code == short_code
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransientIOError(f"Failed to delete '{short_code}': {e}") from e

        if not deleted:
            raise NotFoundError(f"Short code '{short_code}' not found")

    def update_expiry_by_code(self, short_code: str, expires_at: datetime) -> None:
        try:
            result = self.db.execute(
                update(ShortURL)
                .where(ShortURL.short_code == short_code)
                .values(expires_at=expires_at)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransientIOError(f"Failed to update expiry of '{short_code}': {e}") from e

        if result.rowcount == 0:
            raise NotFoundError(f"Short code '{short_code}' not found")

    def add_views(self, short_code: str, delta: int) -> None:
        try:
            # Single UPDATE ... SET view_count = view_count + delta, no read-modify-write
            result = self.db.execute(
                update(ShortURL)
                .where(ShortURL.short_code == short_code)
                .values(view_count=ShortURL.view_count + delta)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransientIOError(f"Failed to add {delta} views to '{short_code}': {e}") from e

        if result.rowcount == 0:
            logger.warning("Dropped %d views for deleted short code '%s'", delta, short_code)

    def list_by_owner(
        self,
        owner_id: Optional[int],
        limit: int,
        offset: int
    ) -> Tuple[List[ShortURL], int]:
        if owner_id is None:
            query = self.db.query(ShortURL).filter(ShortURL.owner_id.is_(None))
        else:
            query = self.db.query(ShortURL).filter(ShortURL.owner_id == owner_id)

        try:
            total = query.count()
            rows = query.order_by(ShortURL.id).limit(limit).offset(offset).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise TransientIOError(f"Failed to list records for owner {owner_id}: {e}") from e
        return rows, total
