"""Cellzone application entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

import cellzone.database as database
from cellzone.api.middleware import install_middleware
from cellzone.cells.models import NetworkType
from cellzone.config import Settings, load_config, settings
from cellzone.engine.core import CellEngine
from cellzone.observer.base import BaseObserver
from cellzone.sinks.base import (
    CompositeStatusIndicator,
    ConfigurationSink,
    LoggingConfigurationSink,
    StatusBoard,
    StatusIndicator,
)

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


def _create_observer(mode: str, cfg: Settings) -> BaseObserver | None:
    """Factory: instantiate the configured observer backend."""
    network_type = NetworkType(cfg.network_type)
    if mode == "modem":
        from cellzone.observer.modem import ModemObserver

        if not cfg.modem_url:
            logger.warning("Modem mode selected but modem_url not configured")
            return None
        return ModemObserver(
            url=cfg.modem_url,
            network_type=network_type,
            username=cfg.modem_username,
            password=cfg.modem_password,
            poll_interval=cfg.poll_interval,
        )
    if mode == "mock":
        from cellzone.observer.mock import MockObserver

        return MockObserver(network_type=network_type, interval=cfg.mock_interval)
    if mode == "none":
        return None
    logger.warning("Unknown observer mode '%s', skipping", mode)
    return None


def _create_sinks(cfg: Settings, board: StatusBoard) -> tuple[ConfigurationSink, StatusIndicator]:
    """Build the configuration sink and status indicator from settings."""
    sink: ConfigurationSink = LoggingConfigurationSink()
    indicator: StatusIndicator = board
    if cfg.sink_webhook_url or cfg.status_webhook_url:
        from cellzone.sinks.webhook import WebhookConfigurationSink, WebhookStatusIndicator

        if cfg.sink_webhook_url:
            sink = WebhookConfigurationSink(cfg.sink_webhook_url)
        if cfg.status_webhook_url:
            indicator = CompositeStatusIndicator(
                board, WebhookStatusIndicator(cfg.status_webhook_url)
            )
    return sink, indicator


async def _start_observers(app: FastAPI, cfg: Settings) -> None:
    """Start all configured observers and feed them into the engine."""
    observers: list[BaseObserver] = []
    for mode in cfg.observer_modes:
        observer = _create_observer(mode, cfg)
        if observer:
            observer.on_event(app.state.cell_engine.on_sighting)
            await observer.start()
            observers.append(observer)
            logger.info("Observer started: %s", mode)

    if not observers:
        logger.info("No observers configured")
    else:
        logger.info("Running %d observer(s): %s", len(observers), cfg.observer_modes)

    app.state.observers = observers


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application startup/shutdown lifecycle."""
    cfg = load_config()
    database.init_db()
    logger.info("Database initialized")

    board = StatusBoard()
    sink, indicator = _create_sinks(cfg, board)
    app.state.status_board = board
    app.state.cell_engine = CellEngine(
        database.engine,
        sink,
        indicator,
        worker_threads=cfg.worker_threads,
        no_profile_label=cfg.no_profile_label,
        unknown_area_label=cfg.unknown_area_label,
    )

    await _start_observers(app, cfg)

    yield

    for observer in app.state.observers:
        await observer.stop()
    logger.info("All observers stopped")
    app.state.cell_engine.shutdown()


app = FastAPI(
    title="Cellzone",
    description="Cell-based area detection and profile switching",
    version="0.1.0",
    lifespan=lifespan,
)


install_middleware(app, settings)


# Register routers
from cellzone.api.routes import router as api_router  # noqa: E402

app.include_router(api_router)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


def main() -> None:
    import uvicorn

    logger.info("Starting Cellzone on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
