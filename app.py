"""
Sticker Pack Server - im.ponies.user_emotes packs and the sticker picker web UI
FastAPI backend over an S3 bucket of sticker packs and a git mirror of the web UI
"""

import sys
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from config import ServerConfig, ConfigMissingError
from storage import PackStorage, StoreError, StoreFetchError, StoreListError
from packs import PackIndexBuilder, EmoteAggregator, ManifestParseError, packs_router
from mirror import MirrorSynchronizer, RefreshScheduler, SyncError, static_router

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT = "/web/index.html"


def _error_response(kind: str, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"error": kind, "message": str(exc)},
    )


async def store_error_handler(request: Request, exc: StoreError):
    if isinstance(exc, StoreListError):
        kind = "store_list_failed"
        logger.error(f"Error listing bucket: {exc}")
    elif isinstance(exc, StoreFetchError):
        kind = "store_fetch_failed"
        logger.error(f"Error fetching {exc.key}: {exc}")
    else:
        kind = "store_error"
        logger.error(f"Store error: {exc}")
    return _error_response(kind, exc)


async def manifest_error_handler(request: Request, exc: ManifestParseError):
    logger.error(f"Error creating user emotes: {exc}")
    return _error_response("manifest_invalid", exc)


def create_app(config: ServerConfig, storage: PackStorage,
               mirror: MirrorSynchronizer,
               scheduler: Optional[RefreshScheduler] = None) -> FastAPI:
    """
    Build the server app.

    The mirror must already be initialized; the scheduler (if any) is started
    and stopped with the app's lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if scheduler is not None:
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.stop()

    app = FastAPI(
        title="Sticker Pack Server",
        description="Sticker packs and sticker picker web UI per profile",
        version="0.1.0",
        lifespan=lifespan,
    )

    index_builder = PackIndexBuilder(storage, homeserver_url=config.homeserver_url)
    app.state.config = config
    app.state.storage = storage
    app.state.index_builder = index_builder
    app.state.aggregator = EmoteAggregator(index_builder, storage)
    app.state.mirror = mirror

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(ManifestParseError, manifest_error_handler)

    @app.get("/__ping", status_code=204)
    def ping():
        """Liveness probe"""
        return Response(status_code=204)

    @app.get("/")
    def root():
        return RedirectResponse(DEFAULT_DOCUMENT, status_code=308)

    # Pack routes first: the web UI route matches any /{profile}/... path
    app.include_router(packs_router)
    app.include_router(static_router)

    return app


def main() -> int:
    try:
        config = ServerConfig.from_env()
    except ConfigMissingError as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(str(e))
        return 1

    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    mirror = MirrorSynchronizer(
        config.repo_url,
        branch=config.branch,
        git_timeout=config.git_timeout,
        snapshot_grace=config.snapshot_grace,
    )
    try:
        mirror.initialize()
    except SyncError as e:
        logger.error(f"Failed to download repository: {e}")
        mirror.close()
        return 1

    storage = PackStorage.from_config(config)
    scheduler = RefreshScheduler(mirror, config.refresh_interval)
    app = create_app(config, storage, mirror, scheduler)

    import uvicorn

    logger.info(f"Starting Sticker Pack Server on http://{config.host}:{config.port}")
    try:
        uvicorn.run(app, host=config.host, port=config.port)
    finally:
        mirror.close()
    return 0


# Run with: python app.py
if __name__ == "__main__":
    sys.exit(main())
