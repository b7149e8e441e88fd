"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
All values are read once at startup and are not mutated at runtime.
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config.constants import (
    BSC_MAINNET_RPC_URL,
    BSC_TESTNET_RPC_URL,
    DEFAULT_BATCH_SIZE,
    DEFAULT_MONITOR_INTERVAL_SECONDS,
    DEFAULT_REORG_SAFETY_BLOCKS,
    DEPOSIT_TOKEN_DECIMALS,
    MONITOR_MAX_ATTEMPTS,
    MONITOR_RATE_LIMIT_COOLDOWN,
    MONITOR_RETRY_BASE_DELAY,
    RPC_TIMEOUT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Deposit contract
    deposit_contract_address: str | None = None
    deposit_token_decimals: int = Field(
        default=DEPOSIT_TOKEN_DECIMALS,
        ge=0,
        le=36,
        description="Fixed-point decimals of the deposited token",
    )

    # Blockchain RPC
    bsc_rpc_url: str | None = BSC_MAINNET_RPC_URL
    bsc_testnet_rpc_url: str | None = BSC_TESTNET_RPC_URL
    use_testnet: bool = False
    rpc_timeout: float = Field(
        default=RPC_TIMEOUT, gt=0, description="Per-call RPC timeout in seconds"
    )

    # Deposit monitor
    reorg_safety_blocks: int = Field(
        default=DEFAULT_REORG_SAFETY_BLOCKS,
        ge=0,
        description="Confirmations required before a block is treated as final",
    )
    deposit_batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE,
        ge=1,
        description="Maximum number of blocks scanned per tick",
    )
    monitor_interval_seconds: int = Field(
        default=DEFAULT_MONITOR_INTERVAL_SECONDS,
        ge=1,
        description="Deposit monitor polling interval in seconds",
    )
    monitor_max_attempts: int = Field(
        default=MONITOR_MAX_ATTEMPTS,
        ge=1,
        description="Attempts per tick before the tick is abandoned",
    )
    monitor_retry_base_delay: float = Field(
        default=MONITOR_RETRY_BASE_DELAY,
        ge=0,
        description="Base delay for exponential backoff between attempts",
    )
    monitor_rate_limit_cooldown: float = Field(
        default=MONITOR_RATE_LIMIT_COOLDOWN,
        ge=0,
        description="Fixed cooldown after a rate-limit error",
    )

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Health check HTTP server port"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production' and self.debug:
            raise ValueError(
                'DEBUG must be False in production environment. '
                'Set DEBUG=false in your .env file.'
            )
        return self

    @field_validator('deposit_contract_address')
    @classmethod
    def validate_contract_address(cls, v: str | None) -> str | None:
        """Validate deposit contract address format."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith('0x') or len(v) != 42:
            raise ValueError(
                f'Invalid contract address: {v}. '
                'Must start with 0x and be 42 characters long.'
            )
        try:
            int(v[2:], 16)
        except ValueError as exc:
            raise ValueError(f'Invalid contract address format: {v}') from exc
        return v.lower()

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(('postgresql://', 'postgresql+asyncpg://')):
            raise ValueError(
                'DATABASE_URL must start with postgresql:// or postgresql+asyncpg://'
            )
        return v

    @property
    def async_database_url(self) -> str:
        """Database URL with the asyncpg driver selected."""
        if self.database_url.startswith('postgresql://'):
            return self.database_url.replace(
                'postgresql://', 'postgresql+asyncpg://', 1
            )
        return self.database_url

    @property
    def active_rpc_url(self) -> str | None:
        """RPC endpoint for the selected network."""
        return self.bsc_testnet_rpc_url if self.use_testnet else self.bsc_rpc_url

    @property
    def network_name(self) -> str:
        """Human-readable name of the selected network."""
        return "BSC Testnet" if self.use_testnet else "BSC Mainnet"


# Global settings instance
settings = Settings()
