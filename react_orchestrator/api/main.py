"""
FastAPI application for react_orchestrator.

Exposes the reasoning loop over HTTP: an SSE endpoint that streams the
loop's events, a blocking run endpoint, and read-only views of sessions
and recent events.

Usage:
    # Development server with auto-reload
    uvicorn react_orchestrator.api.main:app --reload --host 0.0.0.0 --port 3333

    # Debug mode (verbose logging)
    LOG_LEVEL=DEBUG uvicorn react_orchestrator.api.main:app --reload --port 3333
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import config
from ..orchestrator import Orchestrator
from ..tracing import init_tracing_client, shutdown_tracing
from .routes import agent, health


def configure_logging():
    """Configure logging based on LOG_LEVEL."""
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("react_orchestrator").setLevel(log_level)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Starting react_orchestrator API server")
    orchestrator: Orchestrator = app.state.orchestrator

    logger.info("=" * 60)
    logger.info("MODEL CONFIGURATION")
    logger.info(f"  Base URL: {config.llm.base_url}")
    logger.info(f"  Model: {orchestrator.config.model}")
    logger.info(f"  Temperature: {orchestrator.config.temperature}")
    logger.info(f"  Max Iterations: {orchestrator.config.max_iterations}")
    logger.info(f"  Language: {orchestrator.config.language}")

    logger.info("-" * 60)
    logger.info("TOOL ENDPOINTS")
    logger.info(f"  SearXNG: {config.tools.searxng_endpoint}")
    logger.info(f"  RAG: {config.tools.rag_endpoint}")

    logger.info("-" * 60)
    logger.info("REGISTERED TOOLS")
    for name, tool in orchestrator.tools.all_tools().items():
        logger.info(f"  - {name}: {tool.description[:60]}...")

    logger.info("-" * 60)
    logger.info("LANGFUSE OBSERVABILITY")
    tracing_client = init_tracing_client(
        public_key=config.langfuse.public_key,
        secret_key=config.langfuse.secret_key,
        host=config.langfuse.host,
        debug=config.langfuse.debug,
    )
    if tracing_client.enabled:
        logger.info("  Status: ENABLED")
        logger.info(f"  Host: {config.langfuse.host or 'https://cloud.langfuse.com'}")
    else:
        logger.info("  Status: DISABLED")
        if tracing_client.error:
            logger.info(f"  Reason: {tracing_client.error}")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down react_orchestrator API server")
    await orchestrator.close()
    shutdown_tracing()


def create_app(orchestrator: Optional[Orchestrator] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        orchestrator: Orchestrator serving the requests; one with the
            default model client and built-in tools is created if omitted.
    """
    app = FastAPI(
        title="react_orchestrator API",
        description="Reason/act/observe agent with streamed progress events.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.orchestrator = orchestrator or Orchestrator()

    # Allow all origins; the SSE endpoint is consumed from browsers.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["Health"])
    app.include_router(agent.router, tags=["Agent"])

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Log validation errors before returning 400 response."""
        logger.warning(
            f"Validation error on {request.method} {request.url.path}: {exc.errors()}"
        )
        body = await request.body()
        logger.debug(f"Request body: {body.decode('utf-8', errors='replace')[:1000]}")
        return JSONResponse(
            status_code=400,
            content={"detail": jsonable_errors(exc)},
        )

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors with their non-serializable ``ctx`` values stringified."""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


# Create the application instance
app = create_app()


def run_server():
    """Run the server using uvicorn."""
    import uvicorn

    uvicorn.run(
        "react_orchestrator.api.main:app",
        host=config.server.host,
        port=config.server.port,
        reload=config.server.reload,
    )


if __name__ == "__main__":
    run_server()
