from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ecom.api.deps import get_current_user_id
from ecom.db import get_db
from ecom.schemas.cart_schema import CheckoutIn, CheckoutOut
from ecom.services.order_service import CheckoutService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.post("/checkout", response_model=CheckoutOut, summary="Checkout the cart")
def checkout(
    payload: CheckoutIn,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    # CheckoutError subclasses are rendered by the handler registered in main
    result = CheckoutService(db).checkout(user_id, payload.items)
    return {
        "id": result.order_id,
        "total": float(result.total),
        "message": "Order created successfully",
    }
