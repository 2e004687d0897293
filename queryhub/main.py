from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import Optional
from queryhub.config import Settings, settings
from queryhub.routers import admin, lookup
from queryhub.services.gateway import QueryGateway
from queryhub.utils.exceptions import QueryHubException, STATUS_CODE_MAP, error_body
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_app(config: Optional[Settings] = None, gateway: Optional[QueryGateway] = None) -> FastAPI:
    config = config or settings
    gateway = gateway or QueryGateway(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Manage application lifecycle events"""
        # Startup
        logger.info("Starting up Lookup API...")

        try:
            await gateway.initialize()
            logger.info("✓ Application startup completed successfully")
        except QueryHubException as e:
            logger.error(f"✗ Storage initialization failed: {e.message}")
            # Don't raise exception - reads degrade to empty partitions

        yield

        # Shutdown
        logger.info("Shutting down Lookup API...")
        await gateway.close()
        logger.info("✓ Application shutdown completed")

    app = FastAPI(
        title=config.api_title,
        version=config.api_version,
        description=config.api_description,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.gateway = gateway

    allow_origins = config.cors_allow_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials="*" not in allow_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    # Include routers
    app.include_router(lookup.router)
    app.include_router(admin.router)

    @app.exception_handler(QueryHubException)
    async def queryhub_exception_handler(request: Request, exc: QueryHubException):
        """Global exception handler for QueryHubException"""
        return JSONResponse(status_code=STATUS_CODE_MAP.get(exc.code, 500), content=error_body(exc))

    @app.get("/")
    async def root():
        """Root endpoint with API information"""
        return {
            "name": config.api_title,
            "version": config.api_version,
            "description": config.api_description,
            "endpoints": {
                "query": "/v1/lookup/query",
                "stats": "/v1/lookup/stats",
                "admin": "/v1/admin",
            },
            "docs": "/docs",
        }

    @app.get("/health")
    async def health():
        """Basic health check endpoint"""
        try:
            storage_healthy = await gateway.store.health_check()
            protection_healthy = await gateway.protection.document.readable()
            overall_health = storage_healthy and protection_healthy

            return {
                "status": "healthy" if overall_health else "degraded",
                "service": "queryhub",
                "components": {
                    "query_store": "healthy" if storage_healthy else "unhealthy",
                    "protection": "healthy" if protection_healthy else "unhealthy",
                    "endpoints": gateway.endpoints.snapshot(),
                },
            }
        except Exception as e:
            logger.error(f"Health check failed: {str(e)}")
            return {"status": "unhealthy", "service": "queryhub", "error": str(e)}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8080)
