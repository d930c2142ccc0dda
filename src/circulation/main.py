"""Entry point for the circulating supply tracker.

Wires all components together and runs the indexer, optionally alongside
the read API. With the API enabled (default) both share one asyncio event
loop via uvicorn's programmatic server and FastAPI's lifespan.

Handles SIGINT/SIGTERM for graceful shutdown after the batch in progress.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. CirculationDatabase + CirculationStore (persistence)
4. Web3ChainClient (chain reader)
5. RpcBlockSource (finalized block batches)
6. BalanceAggregator + HeadRefreshPolicy + CirculationProcessor
7. Indexer (run loop)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from circulation.chain.block_source import RpcBlockSource
from circulation.chain.web3_client import Web3ChainClient
from circulation.config import AppSettings
from circulation.data.database import CirculationDatabase
from circulation.data.store import CirculationStore
from circulation.indexer import Indexer
from circulation.logging import get_logger, setup_logging
from circulation.processing.aggregator import BalanceAggregator
from circulation.processing.head_refresh import HeadRefreshPolicy
from circulation.processing.processor import CirculationProcessor


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all components from settings.

    Does NOT open the database or the RPC connection; that happens in
    _open_components().
    """
    database = CirculationDatabase(settings.database.path)
    store = CirculationStore(database)
    chain_client = Web3ChainClient(settings.chain)
    source = RpcBlockSource(chain_client, settings.chain, settings.indexer)
    aggregator = BalanceAggregator(chain_client)
    head_policy = HeadRefreshPolicy(settings.indexer.latest_data_update_interval)
    processor = CirculationProcessor(aggregator, store, head_policy)
    indexer = Indexer(source, processor, store, settings.chain, settings.indexer)

    return {
        "database": database,
        "store": store,
        "chain_client": chain_client,
        "source": source,
        "aggregator": aggregator,
        "processor": processor,
        "indexer": indexer,
    }


async def _open_components(components: dict[str, Any]) -> None:
    await components["database"].connect()
    await components["chain_client"].connect()


async def _close_components(components: dict[str, Any]) -> None:
    await components["chain_client"].close()
    await components["database"].close()


def _setup_signal_handlers(indexer: Indexer) -> None:
    """SIGINT/SIGTERM stop the indexer after its current batch.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("circulation.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(indexer.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the indexer as a background task for the lifetime of the API.

    The indexer retries failed batches itself, so its task only ends early
    on a data-integrity error. In that case the server is asked to exit
    rather than keep serving a series that no longer advances.
    """
    logger = get_logger("circulation.main")
    components = app.state.components

    await _open_components(components)
    app.state.store = components["store"]

    indexer: Indexer = components["indexer"]
    indexer_task = asyncio.create_task(indexer.start())

    def _on_indexer_done(task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        logger.error("indexer_failed", error=str(task.exception()), exc_info=task.exception())
        server = getattr(app.state, "server", None)
        if server is not None:
            server.should_exit = True

    indexer_task.add_done_callback(_on_indexer_done)
    logger.info("lifespan_started")

    try:
        yield
    finally:
        await indexer.stop()
        indexer_task.cancel()
        try:
            await indexer_task
        except asyncio.CancelledError:
            pass
        except Exception:
            pass  # already reported by _on_indexer_done
        finally:
            await _close_components(components)
            logger.info("circulation_tracker_stopped")


async def run() -> None:
    """Run the circulation tracker.

    API enabled (API_ENABLED=true, the default): uvicorn serves the read
    API and the lifespan runs the indexer in the same event loop.

    API disabled: the indexer runs directly. Failed batches are retried by
    the indexer; a data-integrity error ends the process.
    """
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("circulation.main")

    components = _build_components(settings)

    if settings.api.enabled:
        from circulation.api.app import create_api_app

        app = create_api_app(lifespan=lifespan)
        app.state.components = components

        logger.info(
            "starting_with_api",
            host=settings.api.host,
            port=settings.api.port,
            latest_data_update_interval=settings.indexer.latest_data_update_interval,
        )

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        app.state.server = server
        await server.serve()
    else:
        _setup_signal_handlers(components["indexer"])

        logger.info(
            "starting_without_api",
            deployed_at=settings.chain.deployed_at,
            latest_data_update_interval=settings.indexer.latest_data_update_interval,
        )

        try:
            await _open_components(components)
            await components["indexer"].start()
        finally:
            await _close_components(components)
            logger.info("circulation_tracker_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
