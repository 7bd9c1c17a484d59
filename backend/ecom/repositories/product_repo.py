from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from ecom.models.product import Product


class ProductRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def get_by_name(self, name: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.name == name).first()

    def list(self) -> List[Product]:
        return self.db.query(Product).order_by(Product.id).all()

    def create(
        self,
        name: str,
        price: Decimal,
        quantity: int = 0,
        description: Optional[str] = None,
        image: Optional[str] = None,
    ) -> Product:
        p = Product(
            name=name,
            description=description,
            image=image,
            price=price,
            quantity=quantity,
        )
        self.db.add(p)
        self.db.flush()
        return p
