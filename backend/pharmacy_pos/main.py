"""
Pharmacy Fast Order backend.

ARCHITECTURE:
- Web till (browser): basket editing, customer picking, submission
- FastAPI backend: pricing, order persistence, history
- SQL database: source of truth for drugs, templates, orders, saved baskets

PRICING MODEL:
- Drug lines are charged at the price on the line
- Orders started from a template are re-priced server-side: the order total
  is spread over the drugs in proportion to their standard prices, and the
  line totals always add up to the order total exactly
"""
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pharmacy_pos.api.routes import checkout, orders
from pharmacy_pos.core.config import settings
from pharmacy_pos.db.init_db import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables."""
    logger.info("[*] Initializing database...")
    init_db()
    logger.info(
        f"[OK] Database initialized (write mode={settings.ORDER_WRITE_MODE}, "
        f"remainder policy={settings.PRICE_REMAINDER_POLICY})"
    )
    yield


app = FastAPI(
    title="Pharmacy Fast Order API",
    description="Checkout basket, template pricing and order history for the pharmacy till.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
    ],
    max_age=600,
    expose_headers=["Content-Type", "Content-Disposition"],
)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response

app.include_router(checkout.router, prefix="/checkout", tags=["checkout"])
app.include_router(orders.router, prefix="/orders", tags=["orders"])


@app.get("/health")
def health():
    return {"status": "ok"}
