"""
Club Ledger API Application Factory
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .. import __version__
from ..config import get_config
from ..logging_config import setup_logging
from .accounts import router as accounts_router
from .transactions import router as transactions_router
from .reporting import router as reporting_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Club Ledger API",
        description="Bank account ledgers and statements for club finances",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])
    app.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])
    app.include_router(reporting_router, prefix="/reports", tags=["Reports"])

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": "club_ledger_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        return {
            "name": "Club Ledger API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "accounts": "/accounts",
                "transactions": "/transactions",
                "reports": "/reports",
            }
        }

    return app


app = create_app()


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the API server with uvicorn"""
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    uvicorn.run(
        "club_ledger.api:app",
        host=host or config.api_host,
        port=port or config.api_port,
        reload=debug,
        log_level=config.log_level.lower()
    )
