"""Main application entry point for the Box Digest worker.

Builds the pipeline context, starts the SQS consumer in the background and
serves a small operations API (health, consumer statistics, manual runs).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI

from digest import PipelineContext, PipelineCoordinator, __version__
from digest.api.routes import files_router, stats_router
from digest.config import get_queue_settings, get_settings
from digest.logging_config import configure_logging
from digest.queue import SQSQueueConsumer

logger = structlog.get_logger()


def create_app(
    context: Optional[PipelineContext] = None,
    start_consumer: Optional[bool] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        context: Pipeline context (built from settings if None)
        start_consumer: Run the queue consumer (from settings if None)

    Returns:
        Configured FastAPI application instance
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Build the pipeline on startup and release it on shutdown."""
        queue_settings = get_queue_settings()

        pipeline_context = context or PipelineContext.from_settings()
        await pipeline_context.records.initialize()

        coordinator = PipelineCoordinator(pipeline_context)
        app.state.coordinator = coordinator
        app.state.consumer = None

        run_consumer = queue_settings.enabled if start_consumer is None else start_consumer
        if run_consumer:
            consumer = SQSQueueConsumer(coordinator)
            await consumer.start()
            app.state.consumer = consumer

        logger.info("digest_service_started", version=__version__, consumer=run_consumer)

        yield

        if app.state.consumer is not None:
            await app.state.consumer.stop()
        await pipeline_context.close()
        logger.info("digest_service_stopped")

    app = FastAPI(
        title="Box Digest",
        description="Document enrichment worker",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
    )

    app.include_router(files_router, prefix="/api/v1")
    app.include_router(stats_router, prefix="/api/v1")

    @app.get("/api/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "service": "box-digest",
        }

    return app


configure_logging()

# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
