# dreamknot/api/__init__.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dreamknot.api.routers import (
    addresses,
    admin_customers,
    admin_orders,
    admin_reports,
    cart,
    categories,
    discount_codes,
    health,
    orders,
    products,
    reviews,
    users,
    wishlist,
)
from dreamknot.domain.errors import ServiceError, ValidationError
from dreamknot.utils.logging import get_logger

logger = get_logger(__name__)


async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    body = {"detail": exc.message, "type": exc.kind}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(lifespan=None) -> FastAPI:
    app = FastAPI(
        title="DreamKnot Store API",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(ServiceError, handle_service_error)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(products.router)
    app.include_router(categories.router)
    app.include_router(cart.router)
    app.include_router(discount_codes.router)
    app.include_router(orders.router)
    app.include_router(admin_orders.router)
    app.include_router(admin_customers.router)
    app.include_router(admin_reports.router)
    app.include_router(reviews.router)
    app.include_router(wishlist.router)
    app.include_router(addresses.router)

    return app
