import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request

from pool_monitor import __version__
from pool_monitor.config.settings import Settings, get_settings
from pool_monitor.database.connection import initialize_database
from pool_monitor.database.operations import PoolRepository
from pool_monitor.services.archive import WebhookArchive
from pool_monitor.services.defillama_client import DefiLlamaClient
from pool_monitor.services.jupiter_client import JupiterClient
from pool_monitor.services.query_service import ApyRefresher, PoolQueryService
from pool_monitor.services.rate_limiter import RateLimiter
from pool_monitor.services.retry_helper import RetryHelper
from pool_monitor.services.webhook_handler import ProcessingStatus, WebhookHandler
from pool_monitor.webhook_listener.helius_helper import WEBHOOK_PATH, register_webhook_on_startup

logger = logging.getLogger(__name__)

MODULES = ["DefiLlama", "Jupiter", "Database", "RateLimiter", "WebhookHandler"]


def _setup_logging(level: str):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


router = APIRouter()


@router.get("/")
async def root():
    return {
        "message": "Solana Pool Monitor is running",
        "version": __version__,
        "endpoints": {
            "webhook": f"POST {WEBHOOK_PATH}",
            "pools": "GET /api/pools",
            "pools_apy": "GET /api/pools/apy",
            "refresh_apy": "POST /api/pools/{pool_address}/apy/refresh",
            "health": "GET /health",
        },
    }


@router.get("/health")
async def health_check(request: Request):
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "modules": MODULES,
        "database": request.app.state.db.get_pool_status(),
    }


@router.post(WEBHOOK_PATH)
async def helius_webhook(request: Request):
    """
    Receive Helius enhanced transactions and store detected pools.
    """
    logger.info(f"WEBHOOK RECEIVED: {datetime.now(timezone.utc).isoformat()}")

    try:
        payload = await request.json()
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid JSON payload")

    state = request.app.state
    try:
        state.archive.record_webhook(payload)
        results = await state.handler.process_webhook_payload(payload)
    except Exception as e:
        logger.error(f"Error processing webhook: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return {
        "status": "success",
        "processed": len(results),
        "saved": sum(1 for result in results if result.status is ProcessingStatus.SAVED),
        "results": [result.to_dict() for result in results],
    }


@router.get("/api/pools")
async def get_pools(request: Request, limit: Optional[int] = Query(None, ge=1, le=500)):
    try:
        return request.app.state.query_service.list_pools(limit)
    except Exception as e:
        logger.error(f"Error getting pools: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/api/pools/apy")
async def get_pools_with_apy(request: Request, limit: Optional[int] = Query(None, ge=1, le=500)):
    try:
        return request.app.state.query_service.list_pools_with_apy(limit)
    except Exception as e:
        logger.error(f"Error getting pools with APY: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/api/pools/{pool_address}/apy/refresh")
async def refresh_pool_apy(request: Request, pool_address: str):
    try:
        refreshed = await request.app.state.apy_refresher.refresh_pool(pool_address)
    except Exception as e:
        logger.error(f"Error refreshing APY for {pool_address}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    if refreshed is None:
        raise HTTPException(status_code=404, detail=f"Pool {pool_address} not found")
    return refreshed


def create_app(
    settings: Optional[Settings] = None,
    defillama_client: Optional[DefiLlamaClient] = None,
    jupiter_client: Optional[JupiterClient] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Clients passed in are used as-is (and left open on shutdown); otherwise
    each external dependency gets its own rate limiter and HTTP client.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _setup_logging(settings.server.log_level)
        logger.info("Solana Pool Monitor starting")

        # Raises DatabaseConnectionError and aborts launch if the database is unreachable
        db = initialize_database(settings.database)

        api = settings.api
        retry_helper = RetryHelper(max_retries=api.max_retries)
        defillama = defillama_client or DefiLlamaClient(
            RateLimiter(api.rate_limit_delay_ms, name="defillama"),
            retry_helper,
            base_url=api.defillama_base_url,
            timeout_seconds=api.timeout_seconds,
        )
        jupiter = jupiter_client or JupiterClient(
            RateLimiter(api.rate_limit_delay_ms, name="jupiter"),
            retry_helper,
            base_url=api.jupiter_base_url,
            timeout_seconds=api.timeout_seconds,
        )

        repository = PoolRepository(db)
        app.state.db = db
        app.state.archive = WebhookArchive(settings.webhook.archive_dir)
        app.state.handler = WebhookHandler(
            repository,
            defillama,
            jupiter,
            archive=app.state.archive,
            accepted_types=settings.webhook.accepted_types,
            chain=api.chain,
        )
        app.state.query_service = PoolQueryService(
            repository,
            pools_limit=settings.server.pools_limit,
            apy_pools_limit=settings.server.apy_pools_limit,
        )
        app.state.apy_refresher = ApyRefresher(repository, app.state.handler)

        await register_webhook_on_startup(settings.helius)

        logger.info(f"Webhook endpoint: POST {WEBHOOK_PATH}")
        logger.info(f"Rate limiting enabled ({api.rate_limit_delay_ms}ms between API calls per service)")
        try:
            yield
        finally:
            logger.info("Shutting down gracefully...")
            if defillama_client is None:
                await defillama.aclose()
            if jupiter_client is None:
                await jupiter.aclose()
            db.dispose()

    app = FastAPI(title="Solana Pool Monitor", version=__version__, lifespan=lifespan)
    app.include_router(router)
    return app


def run():
    """Console entry point."""
    settings = get_settings()
    import uvicorn
    uvicorn.run(create_app(settings), host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    run()
