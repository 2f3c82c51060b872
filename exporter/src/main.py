"""
Exporter entry point -- scrape endpoint plus background poll scheduler.

Builds a FastAPI application that serves the sink's exposition text on
every ``GET`` request and a JSON health report on ``GET /health``. Any
other HTTP method gets a plain-text 404. The application lifespan starts
the poll scheduler (first cycle fires immediately) and stops it on
shutdown.

``main()`` loads configuration from the environment, configures JSON
logging, and serves the app with uvicorn.

CHANGELOG:
- 2026-10-19: Initial creation

TODO:
- None
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from exporter.src.config import ExporterSettings
from exporter.src.health import get_health_status, is_healthy
from exporter.src.hub_client import HubClient
from exporter.src.logging_config import setup_logging
from exporter.src.scheduler import PollScheduler
from exporter.src.sink import MetricSink

logger = logging.getLogger(__name__)

# Keep-alive idle timeout for scrape connections, in seconds.
SCRAPE_TIMEOUT_S: int = 30


def create_app(
    settings: ExporterSettings,
    *,
    sink: MetricSink | None = None,
    scheduler: PollScheduler | None = None,
) -> FastAPI:
    """Build the scrape application.

    Args:
        settings: Loaded exporter configuration.
        sink: Metric sink to serve. Created from *settings* when omitted.
        scheduler: Poll scheduler started by the lifespan. When omitted a
            :class:`HubClient` and scheduler are created from *settings*.

    Returns:
        FastAPI: The configured application.
    """
    if sink is None:
        sink = MetricSink(default_metrics=settings.defaultmetrics)

    client: HubClient | None = None
    if scheduler is None:
        client = HubClient(
            host=settings.hostip,
            port=settings.hostport,
            ssl=settings.hostssl,
            timeout=settings.timeout,
        )
        scheduler = PollScheduler(client, sink, settings.interval)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Run the poll scheduler for the lifetime of the app."""
        scheduler.start()
        yield
        scheduler.stop()
        if client is not None:
            client.close()

    app = FastAPI(
        title="Domoticz Exporter",
        description="Prometheus exporter for Domoticz device state.",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.sink = sink
    app.state.scheduler = scheduler

    @app.get("/health")
    def health() -> JSONResponse:
        """Report the outcome of the last poll cycle.

        Returns:
            JSONResponse: HTTP 200 when the last cycle fetched every
                device class, HTTP 503 otherwise.
        """
        status_code = 200 if is_healthy() else 503
        return JSONResponse(status_code=status_code, content=get_health_status())

    @app.api_route("/{path:path}", methods=["GET", "HEAD"])
    def metrics(path: str) -> Response:
        """Serve the current metrics in the text exposition format."""
        logger.debug("Scrape request received for /%s", path)
        return Response(content=sink.render(), media_type=sink.content_type)

    @app.exception_handler(StarletteHTTPException)
    async def reject_method(
        request: Request, exc: StarletteHTTPException
    ) -> Response:
        """Answer every non-read method with a plain-text 404."""
        if exc.status_code == 405:
            logger.debug(
                "Rejected %s request for %s", request.method, request.url.path
            )
            return PlainTextResponse("Support GET only", status_code=404)
        return await http_exception_handler(request, exc)

    return app


def main() -> None:
    """Exporter entry point.

    Loads configuration from environment variables, configures logging
    (DEBUG when the debug flag is set), then serves the scrape endpoint
    until interrupted.
    """
    setup_logging()

    settings = ExporterSettings()
    setup_logging(level=settings.log_level)

    logger.info(
        "Domoticz exporter starting -- hub %s://%s:%d, poll every %ds, "
        "listening on port %d",
        settings.hub_scheme,
        settings.hostip,
        settings.hub_port,
        settings.interval,
        settings.port,
    )

    app = create_app(settings)
    uvicorn.run(
        app,
        host="0.0.0.0",  # noqa: S104
        port=settings.port,
        timeout_keep_alive=SCRAPE_TIMEOUT_S,
        log_config=None,
    )
    logger.info("Domoticz exporter shut down cleanly")


if __name__ == "__main__":
    main()
