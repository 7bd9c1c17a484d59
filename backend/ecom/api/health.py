import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ecom.db import read_engine

router = APIRouter()
log = logging.getLogger("ecom.health")


@router.get("/health", tags=["health"])
def health():
    db_ok = False
    try:
        with read_engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except SQLAlchemyError:
        log.warning("health check could not reach the database", exc_info=True)

    return {"status": "ok" if db_ok else "degraded", "db": db_ok}
