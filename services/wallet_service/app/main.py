"""FastAPI application for the Wallet Service."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from libs.common.logging import get_logger
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.wallet_service.routers import (
    admin_router,
    games_router,
    internal_router,
    wallet_router,
)
from services.wallet_service.services.outcomes import ConcurrentModificationError
from slowapi.errors import RateLimitExceeded

logger = get_logger(__name__)


async def concurrent_modification_handler(
    request: Request, exc: ConcurrentModificationError
) -> JSONResponse:
    logger.error("Giving up on wallet update for user %s: %s", exc.user_id, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": {
                "code": "CONCURRENT_MODIFICATION",
                "message": "The wallet is busy, please retry",
            }
        },
        headers={"Retry-After": "1"},
    )


def create_app() -> FastAPI:
    """Create and configure the Wallet Service FastAPI app."""
    app = FastAPI(
        title="PawCart Wallet Service",
        version="0.1.0",
        description="Store-credit wallet, reward games and redemptions for PawCart.",
    )

    add_observability_middleware(app)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(
        ConcurrentModificationError, concurrent_modification_handler
    )

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "wallet"}

    # Member-facing routes
    # Gateway: /api/v1/wallet/{path} → /wallet/{path}
    app.include_router(wallet_router)
    # Gateway: /api/v1/games/{path} → /games/{path}
    app.include_router(games_router)

    # Admin routes
    # Gateway: /api/v1/admin/wallet/{path} → /admin/wallet/{path}
    app.include_router(admin_router)

    # Internal service-to-service routes (not proxied by gateway)
    app.include_router(internal_router)

    return app


app = create_app()
