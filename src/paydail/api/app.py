"""FastAPI application factory."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paydail.config import get_settings
from paydail.ledger.database import close_db, init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    await init_db()
    yield
    # Shutdown
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Paydail API",
        description="Crypto deposits credited to naira balances",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from paydail.api.routes import health, markets, wallet, webhook

    app.include_router(health.router, tags=["Health"])
    app.include_router(webhook.router, prefix="/api", tags=["Webhooks"])
    app.include_router(markets.router, prefix="/api", tags=["Markets"])
    app.include_router(wallet.router, prefix="/api", tags=["Wallet"])

    return app


# Default app instance
app = create_app()
