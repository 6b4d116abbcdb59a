"""
FastAPI application bootstrap with: \n
- Lifespan-managed initialization of the database schema and the LLM judge \n
- CORS configured for the frontend \n
- Root logging configured from settings \n

Environment contract (from `settings`): \n
- LOG_LEVEL: root log level. \n
- FRONTEND_URL: allowed CORS origin. \n
- LANGSMITH_*: exported for LangChain tracing when set. \n
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mmstr.api.fast_api import router
from mmstr.api.llm_judge import build_judge
from mmstr.database.config.config import settings
from mmstr.database.config.connection_engine import init_db

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

logger = logging.getLogger("uvicorn")
"""Logger instance for capturing and emitting Uvicorn server logs."""


def export_tracing_env() -> None:
    """Expose the optional LangSmith settings to LangChain, which reads them from the environment."""
    for key in ("LANGSMITH_TRACING", "LANGSMITH_API_KEY", "LANGSMITH_PROJECT", "LANGSMITH_ENDPOINT"):
        value = getattr(settings, key)
        if value is not None:
            os.environ.setdefault(key, str(value))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    App lifespan manager.

    Notes
    ------------
    - On startup (before yielding):
        * Create missing tables.
        * Build the LLM judge once and attach it to `app.state.judge`.
          Tests replace it with a fake before issuing requests.
    - On shutdown (after yielding): nothing to release; sessions are per call.
    """
    export_tracing_env()
    init_db()
    if getattr(app.state, "judge", None) is None:
        app.state.judge = build_judge()
        logger.info("LLM judge ready (model=%s)", settings.OPEN_AI_MODEL)

    try:
        yield
    finally:
        logger.info("MMSTR shutting down")


# Instantiate the FastAPI app with lifespan handler
app = FastAPI(title="MMSTR", lifespan=lifespan)
"""Instatiates a FastAPI application object
    The lifespan=lifespan argument registers a custom startup/shutdown lifecycle manager that:\n
        - On startup: creates the schema and builds the LLM judge.\n
"""
app.state.judge = None

# -----------------------
# CORS configuration
# -----------------------
url = settings.FRONTEND_URL
"""The allowed frontend origin (URL) used for CORS configuration."""

app.add_middleware(
    CORSMiddleware,
    allow_origins=[url],      # Frontend origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------
# API routes
# -----------------------
app.include_router(router)
