from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ecom.api.health import router as health_router
from ecom.api.routes_cart import router as cart_router
from ecom.api.routes_catalogue import router as catalogue_router
from ecom.api.routes_users import router as users_router
from ecom.config import settings
from ecom.db import init_db
from ecom.logging_conf import setup_logging
from ecom.services.errors import CheckoutError, CheckoutErrorKind

setup_logging()

API_PREFIX = "/api/v1"

CHECKOUT_ERROR_STATUS = {
    CheckoutErrorKind.MISSING_IDENTITY: 401,
    CheckoutErrorKind.EMPTY_CART: 400,
    CheckoutErrorKind.INVALID_QUANTITY: 400,
    CheckoutErrorKind.PRODUCT_NOT_FOUND: 404,
    CheckoutErrorKind.OUT_OF_STOCK: 400,
    CheckoutErrorKind.INSUFFICIENT_STOCK: 400,
    CheckoutErrorKind.RESERVATION_FAILED: 409,
    CheckoutErrorKind.CONCURRENCY_VIOLATION: 409,
    CheckoutErrorKind.PERSISTENCE_ERROR: 500,
    CheckoutErrorKind.TIMEOUT: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    init_db()
    yield


app = FastAPI(title="ecom checkout backend", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(CheckoutError)
async def checkout_error_handler(request: Request, exc: CheckoutError):
    return error_response(CHECKOUT_ERROR_STATUS.get(exc.kind, 500), exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return error_response(400, f"invalid payload: {problems}")


app.include_router(health_router, prefix="/api", tags=["health"])

app.include_router(users_router, prefix=API_PREFIX, tags=["users"])

app.include_router(catalogue_router, prefix=f"{API_PREFIX}/products", tags=["catalogue"])

app.include_router(cart_router, prefix=API_PREFIX, tags=["cart"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("ecom.main:app", host=settings.APP_HOST, port=settings.APP_PORT)
