from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ecom.db import get_db, get_read_db
from ecom.repositories.product_repo import ProductRepository
from ecom.schemas.product_schema import CreateProductIn, CreateProductOut, ProductOut

router = APIRouter(tags=["catalogue"])


@router.get("", summary="List products")
def list_products(db: Session = Depends(get_read_db)):
    repo = ProductRepository(db)
    return [ProductOut.model_validate(p).model_dump(by_alias=True) for p in repo.list()]


@router.get("/{product_id}", summary="Get product by id")
def get_product(product_id: int, db: Session = Depends(get_read_db)):
    p = ProductRepository(db).get_by_id(product_id)
    if not p:
        raise HTTPException(status_code=404, detail="product not found")
    return ProductOut.model_validate(p).model_dump(by_alias=True)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=CreateProductOut,
    summary="Create product",
)
def create_product(payload: CreateProductIn, db: Session = Depends(get_db)):
    repo = ProductRepository(db)
    p = repo.create(
        name=payload.name,
        description=payload.description,
        image=payload.image,
        price=payload.price,
        quantity=payload.quantity,
    )
    db.commit()
    return {"id": p.id, "message": "Product created successfully"}
