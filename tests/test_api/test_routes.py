"""Tests for the read API routes with a mocked store."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from circulation.api.app import create_api_app
from circulation.data.store import CirculationStore
from circulation.models import Circulation, CirculationFigures, Snapshot

FIGURES = CirculationFigures(
    total_supply=Decimal("1000000000"),
    reward=Decimal("250000000.5"),
    phala_chain_bridge=Decimal("1"),
    khala_chain_bridge=Decimal("2"),
    sygma_bridge=Decimal("3"),
    portal_bridge=Decimal("4"),
    circulation=Decimal("749999989.5"),
)

SNAPSHOT = Snapshot.at(datetime(2024, 3, 28, tzinfo=timezone.utc), 12743284, FIGURES)


@pytest.fixture
def mock_store() -> AsyncMock:
    store = AsyncMock(spec=CirculationStore)
    store.get_circulation.return_value = Circulation(
        id="0",
        block_height=12800000,
        timestamp=datetime(2024, 4, 1, 8, 30, 2, tzinfo=timezone.utc),
        figures=FIGURES,
    )
    store.get_snapshots.return_value = [SNAPSHOT]
    store.get_snapshot.return_value = SNAPSHOT
    store.get_latest_snapshot.return_value = SNAPSHOT
    store.get_processed_height.return_value = 12800010
    return store


@pytest.fixture
def client(mock_store: AsyncMock) -> TestClient:
    return TestClient(create_api_app(mock_store))


class TestCirculation:
    def test_returns_latest_with_string_decimals(self, client: TestClient) -> None:
        response = client.get("/api/circulation")

        assert response.status_code == 200
        body = response.json()
        assert body["block_height"] == 12800000
        assert body["circulation"] == "749999989.5"
        assert body["reward"] == "250000000.5"
        assert body["timestamp"] == "2024-04-01T08:30:02+00:00"
        assert body["timestamp_ms"] == 1711960202000

    def test_404_before_first_update(self, client: TestClient, mock_store: AsyncMock) -> None:
        mock_store.get_circulation.return_value = None
        assert client.get("/api/circulation").status_code == 404


class TestSnapshots:
    def test_lists_series(self, client: TestClient, mock_store: AsyncMock) -> None:
        response = client.get("/api/snapshots")

        assert response.status_code == 200
        assert response.json() == [
            {
                "id": "2024-03-28T00:00:00.000Z",
                "block_height": 12743284,
                "timestamp": "2024-03-28T00:00:00.000Z",
                "total_supply": "1000000000",
                "reward": "250000000.5",
                "phala_chain_bridge": "1",
                "khala_chain_bridge": "2",
                "sygma_bridge": "3",
                "portal_bridge": "4",
                "circulation": "749999989.5",
            }
        ]
        mock_store.get_snapshots.assert_awaited_once_with(since_ms=None, until_ms=None, limit=None)

    def test_date_and_ms_bounds(self, client: TestClient, mock_store: AsyncMock) -> None:
        client.get("/api/snapshots", params={"since": "2024-03-01", "until": "1711929600000", "limit": 10})

        mock_store.get_snapshots.assert_awaited_once_with(
            since_ms=1709251200000, until_ms=1711929600000, limit=10
        )

    def test_iso_datetime_bound(self, client: TestClient, mock_store: AsyncMock) -> None:
        client.get("/api/snapshots", params={"since": "2024-03-01T00:00:00.000Z"})

        assert mock_store.get_snapshots.await_args.kwargs["since_ms"] == 1709251200000

    def test_invalid_bound_is_422(self, client: TestClient) -> None:
        assert client.get("/api/snapshots", params={"since": "yesterday"}).status_code == 422

    def test_single_snapshot(self, client: TestClient, mock_store: AsyncMock) -> None:
        response = client.get("/api/snapshots/2024-03-28T00:00:00.000Z")

        assert response.status_code == 200
        assert response.json()["block_height"] == 12743284
        mock_store.get_snapshot.assert_awaited_once_with("2024-03-28T00:00:00.000Z")

    def test_single_snapshot_missing(self, client: TestClient, mock_store: AsyncMock) -> None:
        mock_store.get_snapshot.return_value = None
        assert client.get("/api/snapshots/2020-01-01T00:00:00.000Z").status_code == 404


class TestStatus:
    def test_status(self, client: TestClient) -> None:
        response = client.get("/api/status")
        assert response.json() == {
            "processed_height": 12800010,
            "latest_snapshot": "2024-03-28T00:00:00.000Z",
        }

    def test_store_not_ready(self) -> None:
        client = TestClient(create_api_app(None))
        assert client.get("/api/status").status_code == 503
