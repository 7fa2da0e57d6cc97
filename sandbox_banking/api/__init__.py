"""
Sandbox API Application Factory
"""

import uvicorn
from fastapi import FastAPI

from .sandbox import router as sandbox_router
from .. import __version__


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Sandbox Banking API",
        description="Bulk import of sandbox banks, users, accounts and transactions",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.include_router(sandbox_router, prefix="/sandbox", tags=["Sandbox"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "sandbox_banking_api",
            "version": __version__
        }

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "sandbox_banking.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
