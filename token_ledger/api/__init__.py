"""
Token Ledger API Application Factory
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .. import __version__
from .token import router as token_router
from .events import router as events_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Token Ledger API",
        description="Fixed-supply fungible token ledger with delegated transfers",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(token_router, tags=["Token"])
    app.include_router(events_router, tags=["Events"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "token_ledger_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Token Ledger API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "token": "/token",
                "balances": "/accounts/{address}/balance",
                "allowances": "/accounts/{owner}/allowances/{spender}",
                "operations": ["/transfer", "/transfer-from", "/approve", "/burn"],
                "events": "/events",
                "verify": ["/events/verify", "/supply/verify"]
            }
        }

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "token_ledger.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
