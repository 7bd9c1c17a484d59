import logging
import os
import time
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional

from filelock import FileLock, Timeout
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecom.config import settings
from ecom.db import is_lock_timeout
from ecom.models.product import Product
from ecom.services.errors import (
    CheckoutError,
    CheckoutTimeout,
    ConcurrencyViolation,
    InsufficientStock,
    InvalidQuantity,
    PersistenceError,
    ProductNotFound,
)
from ecom.utils.transactions import smart_transaction

log = logging.getLogger("ecom.inventory")


class InventoryService:
    """
    Owns the authoritative stock count of every product.

    Stock only goes down through ``reserve_stock``. Callers that touch several
    products should take ``hold`` (file locks) and ``lock_rows`` (row locks)
    first; both acquire in ascending product id so two checkouts sharing
    products can never wait on each other in a cycle.
    """

    def __init__(self, db: Session, lock_dir: Optional[str] = None):
        self.db = db
        self.lock_dir = lock_dir or settings.LOCK_DIR

    def _lock_path(self, product_id: int) -> str:
        return os.path.join(self.lock_dir, f"product_{product_id}.lock")

    @contextmanager
    def hold(self, product_ids: Iterable[int], timeout: float) -> Iterator[None]:
        """
        Hold the per-product file locks for the duration of the block.

        SQLite has no row locks, so this is what serializes reservations on
        the same product across threads and worker processes.
        """
        os.makedirs(self.lock_dir, exist_ok=True)
        deadline = time.monotonic() + timeout
        acquired: List[FileLock] = []
        try:
            for pid in sorted(set(product_ids)):
                lock = FileLock(self._lock_path(pid))
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    lock.acquire(timeout=remaining)
                except Timeout as e:
                    log.warning("timed out waiting for stock lock product_id=%s", pid)
                    raise CheckoutTimeout() from e
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def lock_rows(self, product_ids: Iterable[int]) -> List[Product]:
        """SELECT ... FOR UPDATE every listed product, ordered by id."""
        ids = sorted(set(product_ids))
        try:
            return (
                self.db.query(Product)
                .filter(Product.id.in_(ids))
                .order_by(Product.id)
                .with_for_update()
                .populate_existing()
                .all()
            )
        except SQLAlchemyError as e:
            if is_lock_timeout(e):
                log.warning("timed out waiting for row locks %s", ids)
                raise CheckoutTimeout() from e
            log.error("locking product rows %s failed", ids, exc_info=True)
            raise PersistenceError(str(e)) from e

    def _read_quantity(self, product_id: int) -> Optional[int]:
        return (
            self.db.query(Product.quantity)
            .filter(Product.id == product_id)
            .scalar()
        )

    def available_quantity(self, product_id: int) -> int:
        qty = self._read_quantity(product_id)
        if qty is None:
            raise ProductNotFound(product_id)
        return qty

    def reserve_stock(self, product_id: int, quantity: int) -> int:
        """
        Atomically take ``quantity`` units of ``product_id`` off the shelf and
        return the new stock level.

        Runs in its own transaction, or a SAVEPOINT when the caller already has
        one open, so a failure leaves stock untouched. The post-update re-read
        must match ``current - quantity``; anything else means another writer
        got in between and the reservation is refused.
        """
        if quantity <= 0:
            raise InvalidQuantity(product_id, quantity)

        try:
            with smart_transaction(self.db):
                product = (
                    self.db.query(Product)
                    .filter(Product.id == product_id)
                    .with_for_update()
                    .populate_existing()
                    .first()
                )
                if product is None:
                    raise ProductNotFound(product_id)

                current = product.quantity
                expected = current - quantity
                log.debug("product_id=%s initial quantity=%s", product_id, current)
                if expected < 0:
                    raise InsufficientStock(product_id, product.name, current)

                updated = (
                    self.db.query(Product)
                    .filter(Product.id == product_id, Product.quantity >= quantity)
                    .update(
                        {Product.quantity: Product.quantity - quantity},
                        synchronize_session="fetch",
                    )
                )
                if updated == 0:
                    raise ConcurrencyViolation(product_id, expected=expected)

                actual = self._read_quantity(product_id)
                log.debug("product_id=%s updated quantity=%s", product_id, actual)
                if actual != expected:
                    raise ConcurrencyViolation(product_id, expected=expected, actual=actual)
        except CheckoutError:
            raise
        except SQLAlchemyError as e:
            if is_lock_timeout(e):
                log.warning("timed out waiting for row lock product_id=%s", product_id)
                raise CheckoutTimeout() from e
            log.error("reserve_stock failed product_id=%s", product_id, exc_info=True)
            raise PersistenceError(str(e)) from e

        return expected
