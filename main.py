"""
Folio - Application Entry Point
=================================
FastAPI app initialization, error handling, background scheduler,
and router registration.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError

from config import settings
from config.database import Base, engine
from common.exceptions import FolioError
from common.security import get_session_cookie_kwargs
from modules.payment.dispatcher import scheduler, sweep_pending_payments

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
scheduler_logger = logging.getLogger("folio.scheduler")
logger = logging.getLogger("folio.app")


# ==========================================
# Exception handlers
# ==========================================

async def folio_error_handler(request: Request, exc: FolioError):
    """Render business errors as {"error", "code"} with the error's status."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.code} {exc.message}")
    response = JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "code": exc.code},
    )
    issued = getattr(request.state, "issued_session_id", None)
    if issued:
        response.set_cookie(settings.SESSION_COOKIE_NAME, issued, **get_session_cookie_kwargs())
    return response


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "code": "VALIDATION_ERROR", "details": jsonable_encoder(exc.errors())},
    )


# ==========================================
# Lifespan: tables + scheduler
# ==========================================

@asynccontextmanager
async def lifespan(app):
    # Auto-create any missing tables (safe for existing tables)
    Base.metadata.create_all(bind=engine)

    scheduler.add_job(sweep_pending_payments, 'interval', seconds=60, id='payment_sweep')
    scheduler.start()
    scheduler_logger.info("Background scheduler started (payment sweep: 60s)")
    yield
    scheduler.shutdown()
    scheduler_logger.info("Background scheduler stopped")


# ==========================================
# Create App
# ==========================================
app = FastAPI(
    title="Folio",
    description="Bookstore backend: cart, checkout, inventory and payments",
    version="1.0.0",
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.add_exception_handler(FolioError, folio_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)


# ==========================================
# Routers
# ==========================================
from modules.auth.routes import router as auth_router
from modules.cart.routes import router as cart_router
from modules.order.routes import router as order_router
from modules.payment.routes import router as payment_router
from modules.inventory.routes import router as inventory_router
from modules.shipping.routes import router as shipping_router

app.include_router(auth_router)
app.include_router(cart_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(inventory_router)
app.include_router(shipping_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
