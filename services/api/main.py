"""FastAPI backend for the product extraction pipeline."""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import Settings, get_settings
from .routes import attributes, exports, health
from core.response_cache import ResponseCache
from core.scraper_engine import ProductPipeline
from core.session_manager import SessionManager
from network.httpx_scraper import MarketplaceFetcher
from utils.logger import configure_logging


def build_pipeline(settings: Settings, transport=None) -> ProductPipeline:
    """Wire session, fetcher, cache and pipeline from settings."""
    config = settings.to_pipeline_config()
    session = SessionManager(config)
    fetcher = MarketplaceFetcher(session, config, transport=transport)
    cache = ResponseCache(config.cache_duration_seconds)
    return ProductPipeline(fetcher, cache=cache, config=config)


def create_app(settings: Settings = None, transport=None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Handles startup and shutdown events:
        - Startup: open the shared HTTP client and build the pipeline
        - Shutdown: close the HTTP client gracefully

        Args:
            app: FastAPI application instance
        """
        logger = configure_logging(settings.log_level, settings.log_file)
        logger.info("[API] Starting up...")
        logger.info("[API] Marketplace origin: %s", settings.marketplace_origin)

        pipeline = build_pipeline(settings, transport=transport)
        await pipeline.fetcher.start()
        app.state.pipeline = pipeline
        logger.info("[API] HTTP client ready")

        yield

        logger.info("[API] Shutting down...")
        await pipeline.fetcher.aclose()
        logger.info("[API] HTTP client closed")

    app = FastAPI(
        title="Product Extraction API",
        version="1.0.0",
        description="""
        Marketplace product page extraction service.

        Features:
        - Title, images, price tiers, variants, specifications
        - Sanitized description ready for re-hosting
        - Buyer reviews and recommended products
        - CSV export for catalog import
        - In-process response cache keyed by source URL
        """,
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(attributes.router, prefix="/api", tags=["attributes"])
    app.include_router(exports.router, prefix="/api", tags=["exports"])
    app.include_router(health.router, prefix="/api", tags=["health"])

    @app.get("/")
    def root():
        """
        Root endpoint.

        Returns basic service information.
        """
        return {
            "status": "ok",
            "service": "product-extraction-api",
            "version": "1.0.0",
            "docs": "/api/docs",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    # Run development server
    uvicorn.run(
        "services.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
