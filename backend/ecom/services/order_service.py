import logging
import time
from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from ecom.config import settings
from ecom.db import LOCK_TIMEOUT, is_lock_timeout
from ecom.repositories.order_repo import OrderRepository
from ecom.repositories.product_repo import ProductRepository
from ecom.services.errors import (
    CheckoutError,
    CheckoutTimeout,
    ConcurrencyViolation,
    EmptyCart,
    InsufficientStock,
    InvalidQuantity,
    MissingIdentity,
    OutOfStock,
    PersistenceError,
    ProductNotFound,
    ReservationFailed,
)
from ecom.services.inventory_service import InventoryService
from ecom.utils.transactions import smart_transaction

log = logging.getLogger("ecom.checkout")


class CartLine(NamedTuple):
    product_id: int
    quantity: int


class CheckoutResult(NamedTuple):
    order_id: int
    total: Decimal


class CheckoutService:
    """
    Turns a cart into a pending order.

    Every collaborator is passed in; anything left out is built on ``db``
    with defaults from settings.
    """

    def __init__(
        self,
        db: Session,
        inventory: Optional[InventoryService] = None,
        products: Optional[ProductRepository] = None,
        orders: Optional[OrderRepository] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        address: Optional[str] = None,
        atomic: Optional[bool] = None,
    ):
        self.db = db
        self.inventory = inventory or InventoryService(db)
        self.products = products or ProductRepository(db)
        self.orders = orders or OrderRepository(db)
        self.timeout_seconds = (
            settings.CHECKOUT_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds
        )
        self.max_retries = (
            settings.RESERVATION_MAX_RETRIES if max_retries is None else max_retries
        )
        self.address = address or settings.DEFAULT_SHIPPING_ADDRESS
        self.atomic = settings.CHECKOUT_ATOMIC if atomic is None else atomic

    def _validate(self, user_id: Optional[int], items: Sequence) -> List[CartLine]:
        if user_id is None:
            raise MissingIdentity()
        if not items:
            raise EmptyCart()
        lines = [CartLine(int(it.product_id), int(it.quantity)) for it in items]
        for line in lines:
            if line.quantity <= 0:
                raise InvalidQuantity(line.product_id, line.quantity)
        return lines

    def checkout(self, user_id: Optional[int], items: Sequence) -> CheckoutResult:
        """
        items: sequence of objects with ``product_id`` and ``quantity``
        Returns the new order id and its total.

        In atomic mode (the default) the whole checkout is one transaction:
        either every line is reserved and the order is written, or nothing
        changes. With ``atomic=False`` each reservation commits as soon as it
        succeeds, so an error on a later line leaves earlier lines decremented.
        """
        lines = self._validate(user_id, items)
        deadline = self._now() + self.timeout_seconds
        product_ids = sorted({line.product_id for line in lines})

        try:
            with self.inventory.hold(product_ids, timeout=self.timeout_seconds):
                self._begin(deadline)
                if self.atomic:
                    with smart_transaction(self.db):
                        result = self._place_order(user_id, lines, product_ids, deadline)
                else:
                    result = self._place_order(user_id, lines, product_ids, deadline)
                # smart_transaction only released a savepoint; commit the
                # enclosing transaction
                if self.db.in_transaction():
                    self.db.commit()
        except CheckoutError as e:
            self.db.rollback()
            log.warning(
                "checkout failed user_id=%s kind=%s: %s", user_id, e.kind.value, e.message
            )
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            if is_lock_timeout(e):
                log.warning("checkout failed user_id=%s: database lock wait timed out", user_id)
                raise CheckoutTimeout() from e
            log.error("checkout failed user_id=%s", user_id, exc_info=True)
            raise PersistenceError(str(e)) from e

        log.info(
            "order %s created user_id=%s lines=%d total=%s",
            result.order_id,
            user_id,
            len(lines),
            result.total,
        )
        return result

    def _now(self) -> float:
        return time.monotonic()

    def _check_deadline(self, deadline: float):
        if self._now() > deadline:
            raise CheckoutTimeout()

    def _begin(self, deadline: float):
        """
        Start the session's transaction with database lock waits bounded by
        whatever is left before ``deadline``. A transaction the caller already
        opened is left alone.
        """
        if self.db.in_transaction():
            return
        remaining = deadline - self._now()
        if remaining <= 0:
            raise CheckoutTimeout()
        try:
            self.db.connection(execution_options={LOCK_TIMEOUT: remaining})
        except OperationalError as e:
            if not is_lock_timeout(e):
                raise
            log.warning("timed out waiting for the database write lock")
            raise CheckoutTimeout() from e

    def _place_order(
        self,
        user_id: int,
        lines: List[CartLine],
        product_ids: List[int],
        deadline: float,
    ) -> CheckoutResult:
        self.inventory.lock_rows(product_ids)

        total = Decimal("0")
        priced = []
        for line in lines:
            self._check_deadline(deadline)
            product = self.products.get_by_id(line.product_id)
            if product is None:
                raise ProductNotFound(line.product_id)
            if product.quantity <= 0:
                raise OutOfStock(product.id, product.name)
            if line.quantity > product.quantity:
                raise InsufficientStock(product.id, product.name, product.quantity)

            unit_price = Decimal(product.price)
            subtotal = unit_price * line.quantity
            total += subtotal

            self._reserve(line)
            if not self.atomic:
                self.db.commit()
                self._begin(deadline)
            priced.append((line, unit_price, subtotal))

        self._check_deadline(deadline)
        order_id = self.orders.create_order(user_id, total, self.address)
        for line, unit_price, subtotal in priced:
            self.orders.create_order_item(
                order_id, line.product_id, line.quantity, unit_price, subtotal
            )
        return CheckoutResult(order_id, total)

    def _reserve(self, line: CartLine) -> int:
        attempt = 0
        while True:
            try:
                return self.inventory.reserve_stock(line.product_id, line.quantity)
            except (ConcurrencyViolation, PersistenceError) as e:
                attempt += 1
                if attempt > self.max_retries:
                    raise ReservationFailed(line.product_id) from e
                log.warning(
                    "retrying reservation product_id=%s attempt=%d: %s",
                    line.product_id,
                    attempt,
                    e.message,
                )
            except CheckoutTimeout:
                raise
            except CheckoutError as e:
                raise ReservationFailed(line.product_id) from e
