from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from backoffice.database.database import engine, Base

# Import middleware and error handlers
from backoffice.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from backoffice.common.exceptions import register_exception_handlers

# Import routers
from backoffice.modules.invoices.router import sales_invoices_router, purchase_invoices_router
from backoffice.modules.ledger.router import ledger_router
from backoffice.modules.orders.router import orders_router
from backoffice.modules.numbering.router import numbering_router
from backoffice.modules.snapshots.router import parties_router, products_router

# Import models for table creation
import backoffice.modules.masters.models
import backoffice.modules.snapshots.models
import backoffice.modules.orders.models
import backoffice.modules.invoices.models
import backoffice.modules.numbering.models

from backoffice.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Trading Back-Office API",
    description="Sales/purchase invoicing, payments, partner ledgers and sales-order fulfilment",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(sales_invoices_router)
app.include_router(purchase_invoices_router)
app.include_router(ledger_router)
app.include_router(orders_router)
app.include_router(numbering_router)
app.include_router(parties_router)
app.include_router(products_router)

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=engine)


@app.get("/")
async def read_root():
    return {
        "message": "Trading Back-Office API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Back-office API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
