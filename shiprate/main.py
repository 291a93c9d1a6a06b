"""shiprate: FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shiprate import __version__
from shiprate.api import rules, shipping
from shiprate.api.deps import get_store
from shiprate.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level.upper())
    if settings.rules_file:
        get_store().load_file(settings.rules_file)
        logger.info("Loaded rules from %s", settings.rules_file)
    yield


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="Shipping rate engine: zones, carrier services, surcharges, "
                "free shipping and delivery estimates",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(shipping.router, prefix="/api/v1")
app.include_router(rules.router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "service": settings.app_name, "version": __version__}
