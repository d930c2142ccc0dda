"""Configuration system using pydantic-settings with environment variable loading."""

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from circulation.constants import CONTRACT_ADDRESS, CONTRACT_DEPLOYED_AT


class ChainSettings(BaseSettings):
    """EVM RPC connection and token contract settings."""

    model_config = SettingsConfigDict(env_prefix="CHAIN_")

    rpc_endpoint: SecretStr = SecretStr("")
    contract_address: str = CONTRACT_ADDRESS
    deployed_at: int = CONTRACT_DEPLOYED_AT
    finality_confirmations: int = 75
    max_concurrent_requests: int = 5
    max_retries: int = 5
    retry_base_delay: float = 1.0
    request_timeout: float = 30.0  # seconds per RPC request


class IndexerSettings(BaseSettings):
    """Batch processing parameters.

    ``latest_data_update_interval`` is also read from the bare
    LATEST_DATA_UPDATE_INTERVAL variable used by existing deployments.
    """

    model_config = SettingsConfigDict(env_prefix="INDEXER_", populate_by_name=True)

    latest_data_update_interval: int = Field(
        default=300,
        validation_alias=AliasChoices(
            "INDEXER_LATEST_DATA_UPDATE_INTERVAL",
            "LATEST_DATA_UPDATE_INTERVAL",
            "latest_data_update_interval",
        ),
    )  # seconds between Circulation refreshes at chain head
    batch_size: int = 100  # blocks per processing batch
    poll_interval: float = 6.0  # seconds to wait when caught up
    error_retry_delay: float = 10.0  # seconds to wait after a failed batch


class DatabaseSettings(BaseSettings):
    """SQLite storage location."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    path: str = "data/circulation.db"


class ApiSettings(BaseSettings):
    """Read API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8080


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    chain: ChainSettings = ChainSettings()
    indexer: IndexerSettings = IndexerSettings()
    database: DatabaseSettings = DatabaseSettings()
    api: ApiSettings = ApiSettings()
