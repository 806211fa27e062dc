"""TxWatch gateway simulator: a FastAPI app that mimics the gateway
transaction API for local development and integration tests.

Routes live in `txwatch.simulator.router`; scripted state lives in a
SimulatorStore attached to `app.state.store`.
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from txwatch.config import settings
from txwatch.simulator.router import router as simulator_router
from txwatch.simulator.store import SimulatorStore


@asynccontextmanager
async def lifespan(app):
    logger.info(f"Starting {settings.app_name} gateway simulator")
    yield
    logger.info(f"Shutting down {settings.app_name} gateway simulator")
    app.state.store.reset()


def create_app(store: Optional[SimulatorStore] = None) -> FastAPI:
    app = FastAPI(title=f"{settings.app_name} - Gateway Simulator", version=settings.version, lifespan=lifespan)
    app.state.store = store or SimulatorStore()

    # CORS (development-friendly defaults)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(simulator_router, prefix="/api/v2", tags=["Transactions"])

    @app.get("/", tags=["System"])
    async def root():
        return {"message": f"{settings.app_name} gateway simulator", "version": settings.version}

    @app.get("/health", tags=["System"])
    async def health():
        return {"status": "healthy", "transactions": len(app.state.store.transactions)}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
