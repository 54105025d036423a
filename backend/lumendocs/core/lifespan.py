# FILE: backend/lumendocs/core/lifespan.py
# 1. Builds the AppContext once at startup and stores it on app.state.
# 2. Blocking connects run in a worker thread; shutdown closes every client.

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import settings
from .context import build_context

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("--- [Lifespan] Application startup sequence initiated. ---")

    context = await asyncio.to_thread(build_context, settings)
    app.state.context = context

    logger.info("--- [Lifespan] All resources initialized. Application is ready. ---")

    yield

    logger.info("--- [Lifespan] Application shutdown sequence initiated. ---")
    context.close()
    logger.info("--- [Lifespan] Shutdown complete. ---")
