"""FastAPI application"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import API_HOST, API_PORT, LOG_LEVEL
from .routes.disasters import router as disasters_router
from .routes.resources import router as resources_router
from .routes.diagnostics import router as diagnostics_router
from .database import SessionLocal
from .services.capability import CapabilityProbe

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Probe PostGIS once at startup"""
    try:
        app.state.capability_probe.probe()
    except Exception as e:
        # non-fatal: searches re-probe lazily and the scan backend always works
        logger.warning(f"PostGIS startup probe failed (non-fatal): {e}")
    yield


app = FastAPI(
    title="Relief Geo Search API",
    description="Nearby search over disasters and relief resources (PostGIS with scan fallback)",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS (open for development, restrict in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# one probe per process; tests may swap it
app.state.capability_probe = CapabilityProbe(SessionLocal)

app.include_router(disasters_router)
app.include_router(resources_router)
app.include_router(diagnostics_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=API_HOST, port=API_PORT)
