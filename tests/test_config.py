"""Tests for settings defaults and environment loading."""

from circulation.config import AppSettings, ChainSettings, IndexerSettings
from circulation.constants import CONTRACT_ADDRESS, CONTRACT_DEPLOYED_AT


class TestDefaults:
    def test_indexer_defaults(self, monkeypatch) -> None:
        monkeypatch.delenv("LATEST_DATA_UPDATE_INTERVAL", raising=False)
        monkeypatch.delenv("INDEXER_LATEST_DATA_UPDATE_INTERVAL", raising=False)
        settings = IndexerSettings()
        assert settings.latest_data_update_interval == 300
        assert settings.batch_size == 100

    def test_chain_defaults(self) -> None:
        settings = ChainSettings()
        assert settings.contract_address == CONTRACT_ADDRESS
        assert settings.deployed_at == CONTRACT_DEPLOYED_AT
        assert settings.finality_confirmations == 75


class TestEnvironment:
    def test_bare_update_interval_variable(self, monkeypatch) -> None:
        monkeypatch.setenv("LATEST_DATA_UPDATE_INTERVAL", "60")
        assert IndexerSettings().latest_data_update_interval == 60

    def test_prefixed_update_interval_variable(self, monkeypatch) -> None:
        monkeypatch.delenv("LATEST_DATA_UPDATE_INTERVAL", raising=False)
        monkeypatch.setenv("INDEXER_LATEST_DATA_UPDATE_INTERVAL", "900")
        assert IndexerSettings().latest_data_update_interval == 900

    def test_keyword_override(self) -> None:
        assert IndexerSettings(latest_data_update_interval=5).latest_data_update_interval == 5

    def test_chain_prefix(self, monkeypatch) -> None:
        monkeypatch.setenv("CHAIN_RPC_ENDPOINT", "https://base.example/rpc")
        monkeypatch.setenv("CHAIN_FINALITY_CONFIRMATIONS", "12")
        settings = ChainSettings()
        assert settings.rpc_endpoint.get_secret_value() == "https://base.example/rpc"
        assert settings.finality_confirmations == 12

    def test_app_settings_composes(self, mock_settings: AppSettings) -> None:
        assert mock_settings.log_level == "DEBUG"
        assert mock_settings.indexer.batch_size == 5
