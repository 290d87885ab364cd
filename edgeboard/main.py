"""
FastAPI opportunity engine for Edgeboard: ranked arbitrage/EV reads, bulk row
hydration, line-history analytics and metric scoring.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

import config
from config import EngineSettings, load_settings
from models.schemas import HealthResponse
from routes import history, opportunities, scoring
from services.errors import RetrievalTimeout, StoreUnavailable
from services.store import RankedStore

VERSION = "1.0.0"

# Setup logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=config.LOG_LEVEL,
)
logger = logging.getLogger(__name__)


def create_app(store: Optional[RankedStore] = None, settings: Optional[EngineSettings] = None) -> FastAPI:
    """Build the app. A store passed in is used as-is and never closed by the app."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, 'store', None) is None:
            owned = RankedStore.from_url(config.REDIS_URL)
            app.state.store = owned
            logger.info("Connected store client")
        yield
        if owned is not None:
            await owned.close()
            app.state.store = None

    app = FastAPI(title="Edgeboard Opportunity Engine", version=VERSION, lifespan=lifespan)
    app.state.store = store
    app.state.settings = settings or load_settings()

    @app.exception_handler(RetrievalTimeout)
    async def handle_timeout(request: Request, exc: RetrievalTimeout):
        return JSONResponse(status_code=504, content={'error': 'timeout', 'message': str(exc)},
                            headers={'Cache-Control': 'no-store'})

    @app.exception_handler(StoreUnavailable)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailable):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={'error': 'internal_error', 'message': str(exc)},
                            headers={'Cache-Control': 'no-store'})

    @app.get("/health", response_model=HealthResponse)
    def health():
        return {"status": "ok", "version": VERSION}

    app.include_router(opportunities.router)
    app.include_router(history.router)
    app.include_router(scoring.router)
    return app


app = create_app()
