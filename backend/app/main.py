from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.routers import quotes, invoices, public_quotes, pricing
from app.config import settings
import logging
import sys

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)

# Log startup information
logger.info("="*60)
logger.info("Starting Construction Quotes API")
logger.info("="*60)
logger.info(f"Database: {settings.database_url.split('://')[0]}")
logger.info(f"Default tax rate: {settings.default_tax_rate * 100:.2f}%")
logger.info(
    f"Default payment split: {settings.default_down_payment_percentage}/"
    f"{settings.default_milestone_payment_percentage}/{settings.default_final_payment_percentage}"
)
logger.info("="*60)

# Tables are managed by Alembic migrations (alembic upgrade head)

app = FastAPI(
    title="Construction Quotes API",
    description="API for construction quotes, line item pricing and milestone payments",
    version="1.0.0"
)


def parse_cors_origins(origins_str: str) -> list:
    """Parse CORS origins string into a list"""
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_cors_origins(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Include routers
app.include_router(quotes.router)
app.include_router(invoices.router)
app.include_router(public_quotes.router)  # Customer portal, token based
app.include_router(pricing.router)


@app.get("/")
def root():
    return {"message": "Construction Quotes API", "version": "1.0.0"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler so unexpected errors still return JSON"""
    logging.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {str(exc)}"}
    )
