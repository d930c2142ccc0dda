"""Tests for the API lifespan that hosts the indexer task.

Tests verify:
- An indexer that dies on a data-integrity error asks the server to exit
- Components are closed after the indexer task failed
- A normal shutdown cancels the indexer and closes components
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI

from circulation.chain.web3_client import Web3ChainClient
from circulation.data.database import CirculationDatabase
from circulation.data.store import CirculationStore
from circulation.exceptions import MissingBlockTimestampError, OutOfOrderBlockError
from circulation.indexer import Indexer
from circulation.main import lifespan


@pytest.fixture
def components() -> dict[str, AsyncMock]:
    return {
        "database": AsyncMock(spec=CirculationDatabase),
        "store": AsyncMock(spec=CirculationStore),
        "chain_client": AsyncMock(spec=Web3ChainClient),
        "indexer": AsyncMock(spec=Indexer),
    }


@pytest.fixture
def app(components: dict[str, AsyncMock]) -> FastAPI:
    app = FastAPI()
    app.state.components = components
    app.state.server = SimpleNamespace(should_exit=False)
    return app


async def _let_tasks_run() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class TestIndexerFailure:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [OutOfOrderBlockError("day regressed"), MissingBlockTimestampError(120)],
    )
    async def test_failed_indexer_stops_server(
        self, app: FastAPI, components: dict[str, AsyncMock], error: Exception
    ) -> None:
        components["indexer"].start.side_effect = error

        async with lifespan(app):
            await _let_tasks_run()
            assert app.state.server.should_exit is True

    @pytest.mark.asyncio
    async def test_components_closed_after_indexer_failure(
        self, app: FastAPI, components: dict[str, AsyncMock]
    ) -> None:
        components["indexer"].start.side_effect = OutOfOrderBlockError("day regressed")

        async with lifespan(app):
            await _let_tasks_run()

        components["indexer"].stop.assert_awaited_once()
        components["chain_client"].close.assert_awaited_once()
        components["database"].close.assert_awaited_once()


class TestShutdown:
    @pytest.mark.asyncio
    async def test_running_indexer_cancelled_and_components_closed(
        self, app: FastAPI, components: dict[str, AsyncMock]
    ) -> None:
        async def run_forever() -> None:
            await asyncio.Event().wait()

        components["indexer"].start.side_effect = run_forever

        async with lifespan(app):
            await _let_tasks_run()
            assert app.state.store is components["store"]

        assert app.state.server.should_exit is False
        components["database"].connect.assert_awaited_once()
        components["chain_client"].connect.assert_awaited_once()
        components["chain_client"].close.assert_awaited_once()
        components["database"].close.assert_awaited_once()
