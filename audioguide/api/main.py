import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from audioguide import __version__
from audioguide.api.deps import get_context, get_rules
from audioguide.rules.loader import RulesError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Load rules and validate on startup (fail-fast)
    try:
        rules = app.dependency_overrides.get(get_rules, get_rules)()
    except (FileNotFoundError, RulesError) as e:
        logger.critical("Rules load failed: %s", e)
        sys.exit(1)

    logging.basicConfig(level=rules.logging.level)
    ctx = app.dependency_overrides.get(get_context, get_context)()
    await ctx.cache_manager.restore()
    await ctx.cache_channel.start()
    logger.info("Audio guide API started (data dir %s)", ctx.data_dir)

    yield

    await ctx.cache_channel.close()
    ctx.close()


app = FastAPI(
    title="Audio Guide Client API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from audioguide.api.routes import cache, demos, entitlement, playback  # noqa: E402

app.include_router(entitlement.router, prefix="/api/entitlement", tags=["Entitlement"])
app.include_router(demos.router, prefix="/api/demos", tags=["Demos"])
app.include_router(playback.router, prefix="/api/playback", tags=["Playback"])
app.include_router(cache.router, prefix="/api/cache", tags=["Offline Cache"])


@app.get("/health")
def health_check() -> dict[str, Any]:
    return {"status": "ok", "version": __version__}
