"""
Token Ledger API Application Factory
"""

import uvicorn
from fastapi import FastAPI

from .. import __version__
from .token import router as token_router
from .transfers import router as transfers_router
from .allowances import router as allowances_router
from .burns import router as burns_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Deflationary Token Ledger API",
        description="Fungible-token ledger that burns a share of every transfer",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.include_router(token_router, tags=["Token"])
    app.include_router(transfers_router, prefix="/transfers", tags=["Transfers"])
    app.include_router(allowances_router, prefix="/allowances", tags=["Allowances"])
    app.include_router(burns_router, prefix="/burns", tags=["Burns"])

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
            "name": "Deflationary Token Ledger API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "token": "/token",
                "balances": "/accounts/{account}/balance",
                "allowances": "/allowances",
                "transfers": "/transfers",
                "burns": "/burns",
                "events": "/events",
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
