"""FastAPI application for the quote pipeline.

The application lifespan owns the pipeline: it is started before the first
request is served and stopped, draining the audit log, on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from . import __version__
from .application.pipeline import QuotePipeline
from .domain.config import PipelineConfig
from .domain.enums import RecordType
from .infrastructure.api.error_handlers import register_error_handlers
from .infrastructure.api.routes import router
from .infrastructure.simple_logger import SimpleLogger

logger = logging.getLogger(__name__)

HTTP_RECORD_NAME = "quotes"


def create_app(
    config: PipelineConfig | None = None, pipeline: QuotePipeline | None = None
) -> FastAPI:
    """Create the HTTP boundary around a pipeline.

    Args:
        config: Pipeline configuration, used when no pipeline is given
        pipeline: A pipeline that has not been started yet
    """
    if pipeline is None:
        pipeline = QuotePipeline(config or PipelineConfig(), logger=SimpleLogger())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
        logger.info("Starting quote pipeline")
        await pipeline.start()
        await pipeline.directory.publish(
            HTTP_RECORD_NAME,
            {
                "host": pipeline.config.http_host,
                "port": pipeline.config.http_port,
                "root": "/",
            },
            record_type=RecordType.HTTP_ENDPOINT,
        )
        logger.info("Quote pipeline ready to handle requests")
        try:
            yield
        finally:
            logger.info("Shutting down quote pipeline")
            await pipeline.directory.unpublish(HTTP_RECORD_NAME)
            await pipeline.stop()

    app = FastAPI(
        title="Quote Pipeline",
        description="Latest simulated quotes and their audit trail",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline

    register_error_handlers(app)
    app.include_router(router)
    return app
