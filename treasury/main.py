"""Main application entry point."""

import argparse
import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from treasury.api.routes.funds import router as funds_router
from treasury.api.routes.payment_transfers import router as payment_transfers_router
from treasury.api.routes.recurring_transfers import router as recurring_transfers_router
from treasury.config import settings
from treasury.errors import TreasuryError, error_response
from treasury.models import Base
from treasury.services import engine

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Create missing tables on startup (migrations own schema changes)."""
    logger.info("Treasury API starting...")
    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        engine.dispose()
        logger.info("Treasury API stopped")


app = FastAPI(
    title=settings.api_title,
    description="Circle treasury reconciliation: netting, transfers, recurring payments",
    version=settings.api_version,
    lifespan=lifespan,
)

app.include_router(payment_transfers_router)
app.include_router(funds_router)
app.include_router(recurring_transfers_router)


@app.exception_handler(TreasuryError)
async def treasury_error_handler(request: Request, exc: TreasuryError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "internal_error", "message": "Internal server error"}},
    )


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {"status": "ok"}


def main():
    """Run the API server."""
    from treasury.services.logging import setup_server_logging

    parser = argparse.ArgumentParser(description="Circle Treasury API")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    args = parser.parse_args()

    setup_server_logging()
    logger.info(f"Starting Uvicorn server on {args.host}:{args.port}...")
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
