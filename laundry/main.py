"""FastAPI application entry point."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from laundry.config import settings
from laundry.database import engine, Base
from laundry.exceptions import register_exception_handlers
from laundry.routes import laundry_orders, orders, promo
from laundry.utils.logging import configure_logging

configure_logging(settings.LOG_LEVEL, debug=settings.DEBUG)

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Order lifecycle engine for a laundry marketplace",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(orders.router, prefix="/api")
app.include_router(laundry_orders.router, prefix="/api")
app.include_router(promo.router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.APP_VERSION}
