import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ecom.models.order import ORDER_STATUS_PENDING, Order, OrderItem
from ecom.services.errors import PersistenceError

log = logging.getLogger("ecom.orders")


class OrderRepository:
    """
    Writes order headers and line items. No business rules live here: the
    caller has already priced and reserved every line. Rows are flushed so ids
    are assigned, but committing is left to the caller's transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_order(
        self,
        user_id: int,
        total: Decimal,
        address: str,
        status: str = ORDER_STATUS_PENDING,
    ) -> int:
        order = Order(user_id=user_id, total=total, status=status, address=address)
        try:
            self.db.add(order)
            self.db.flush()
        except SQLAlchemyError as e:
            log.error("create_order failed for user_id=%s", user_id, exc_info=True)
            raise PersistenceError(str(e)) from e
        return order.id

    def create_order_item(
        self,
        order_id: int,
        product_id: int,
        quantity: int,
        unit_price: Decimal,
        price: Decimal,
    ) -> None:
        item = OrderItem(
            order_id=order_id,
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            price=price,
        )
        try:
            self.db.add(item)
            self.db.flush()
        except SQLAlchemyError as e:
            log.error("create_order_item failed for order_id=%s", order_id, exc_info=True)
            raise PersistenceError(str(e)) from e

    def get(self, order_id: int) -> Optional[Order]:
        return self.db.get(Order, order_id)

    def list_items(self, order_id: int) -> List[OrderItem]:
        return (
            self.db.query(OrderItem)
            .filter(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
            .all()
        )

    def count(self) -> int:
        return self.db.query(Order).count()
