"""
Main Application Entry Point

FastAPI application serving config-file translation.
"""

# Standard library
import logging
from contextlib import asynccontextmanager

# Third-party
from fastapi import FastAPI

# Local application imports (config loads .env on import)
from config import APP_ENV
from logs.logging_config import setup_llm_logging, get_llm_logger
from ratelimit import init_rate_limiter, close_rate_limiter
from usage import init_usage_store, close_usage_store
from translation import (
    router as translation_router,
    register_exception_handlers,
    TranslationOrchestrator,
    ConfigTranslator,
    create_translation_llm_client,
)

# Configure logging for non-llm module loggers
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = get_llm_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan.

    Startup creates the shared collaborators once and parks them on app.state:
    1. Rate limiter (memory / redis / unlimited in development)
    2. Usage store
    3. LLM client, translator and orchestrator

    Shutdown drains usage writes and closes sessions and connections.
    """
    setup_llm_logging()
    logger.info(f"=== Application Startup === | env={APP_ENV}")

    rate_limiter = init_rate_limiter()
    usage_store = init_usage_store()
    llm_client = create_translation_llm_client()
    translator = ConfigTranslator(llm_client)

    app.state.rate_limiter = rate_limiter
    app.state.usage_store = usage_store
    app.state.llm_client = llm_client
    app.state.orchestrator = TranslationOrchestrator(translator, rate_limiter=rate_limiter)

    if not llm_client.config.is_configured():
        logger.warning(
            f"[STARTUP] LLM provider not configured | backend={llm_client.config.backend} | "
            f"translations will return provider_not_configured"
        )

    logger.info("=== All components ready ===")
    try:
        yield
    finally:
        logger.info("=== Application Shutdown ===")
        await llm_client.close()
        await close_usage_store()
        await close_rate_limiter()


app = FastAPI(
    title="Config Translator API",
    description="AI translation of configuration and language files",
    version="1.0.0",
    lifespan=lifespan
)

register_exception_handlers(app)
app.include_router(translation_router)


@app.get("/")
async def read_root() -> dict:
    """Health check endpoint."""
    return {"message": "Config Translator API is running.", "status": "ok"}
