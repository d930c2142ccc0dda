"""Shared test fixtures for the circulation tracker."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from circulation.chain.client import ChainReader
from circulation.config import AppSettings, ChainSettings, DatabaseSettings, IndexerSettings
from circulation.data.database import CirculationDatabase
from circulation.data.store import CirculationStore

ONE_TOKEN = 10**18


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:
    """AppSettings with test defaults (local RPC, no retry delays, temp database)."""
    return AppSettings(
        log_level="DEBUG",
        chain=ChainSettings(
            rpc_endpoint="http://localhost:8545",  # type: ignore[arg-type]
            deployed_at=100,
            finality_confirmations=10,
            max_retries=3,
            retry_base_delay=0.0,
        ),
        indexer=IndexerSettings(
            latest_data_update_interval=300,
            batch_size=5,
            poll_interval=0.0,
            error_retry_delay=0.0,
        ),
        database=DatabaseSettings(path=str(tmp_path / "circulation.db")),
    )


@pytest.fixture
def mock_chain() -> AsyncMock:
    """ChainReader whose supply is 1000 tokens and every holder balance is zero."""
    chain = AsyncMock(spec=ChainReader)
    chain.total_supply.return_value = 1000 * ONE_TOKEN
    chain.balance_of.return_value = 0
    return chain


@pytest_asyncio.fixture
async def database(tmp_path):
    """Connected CirculationDatabase in a temp directory."""
    async with CirculationDatabase(str(tmp_path / "db" / "circulation.db")) as db:
        yield db


@pytest_asyncio.fixture
async def store(database: CirculationDatabase) -> CirculationStore:
    return CirculationStore(database)
