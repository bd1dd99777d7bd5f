from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api import bridge, health
from .config import settings
from .core.chain_types import supported_chain_names
from .logging_config import setup_logging

setup_logging()

# Create FastAPI app
app = FastAPI(
    title="EVM Bridge API",
    description="Cross-chain bridge route planning and transfer tracking",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(bridge.router, tags=["Bridge"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "EVM Bridge API",
        "version": __version__,
        "description": "Cross-chain bridge route planning and transfer tracking",
        "chains": supported_chain_names(),
        "docs": "/docs",
        "health": "/healthz",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "evmbridge.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
