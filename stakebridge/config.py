from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.errors import ConfigurationError


BASE_DIR = Path(__file__).resolve().parents[1]

# KlimaDAO contracts on Polygon
KLIMA_ADDRESS = "0x4e78011Ce80ee02d2c3e649Fb657E45898257815"
SKLIMA_ADDRESS = "0xb0C22d8D350C67420f06F48936654f567C73E8C8"
STAKE_KLIMA_CONTRACT_ADDRESS = "0x4D70a031Fc76DA6a9bC0C922101A05FA95c3A227"

# ERC-4337 v0.6 deployments (same address on every chain)
ENTRY_POINT_ADDRESS = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"
SIMPLE_ACCOUNT_FACTORY_ADDRESS = "0x9406Cc6185a346906296840746125a0E44976454"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="none",
    )

    log_level: str = Field(default="INFO", description="Logging level")

    # Wallet
    mnemonic: SecretStr = Field(
        default=SecretStr(""),
        description="Secret phrase for the key-based wallet",
        validation_alias=AliasChoices("mnemonic", "stakebridge_mnemonic"),
    )
    derivation_path: str = Field(default="m/44'/60'/0'/0/0", description="HD derivation path")

    # LI.FI
    lifi_base_url: str = Field(default="https://li.quest/v1", description="LI.FI API base URL")
    lifi_api_key: str = Field(default="", description="Optional LI.FI API key")
    integrator: str = Field(default="lifi-pillar", description="Integrator tag sent with routes and quotes")

    # Chains
    source_chain_id: int = Field(default=250, description="Chain holding the stablecoin (Fantom)")
    destination_chain_id: int = Field(default=137, description="Chain where staking happens (Polygon)")
    source_rpc_url: str = Field(default="", description="JSON-RPC endpoint for the source chain")
    destination_rpc_url: str = Field(default="", description="JSON-RPC endpoint for the destination chain")

    # Smart account (ERC-4337)
    bundler_url: str = Field(default="", description="ERC-4337 bundler endpoint on the destination chain")
    entry_point_address: str = Field(default=ENTRY_POINT_ADDRESS, description="EntryPoint contract")
    account_factory_address: str = Field(
        default=SIMPLE_ACCOUNT_FACTORY_ADDRESS,
        description="Factory used to compute and deploy the smart account",
    )
    account_salt: int = Field(default=0, ge=0, description="Salt for the counterfactual account address")

    # Workflow amounts (human units of the bridged token)
    bridge_token_symbol: str = Field(default="USDC", description="Stablecoin moved across chains")
    bridge_amount: Decimal = Field(default=Decimal("1"), description="Amount to bridge")
    gas_reserve_amount: Decimal = Field(default=Decimal("0.2"), description="Amount swapped to the gas token")
    stake_cap_amount: Optional[Decimal] = Field(
        default=Decimal("1"),
        description="Upper bound for the amount swapped to the governance token; STAKE_CAP_AMOUNT=none disables it",
    )

    # Staking
    governance_token_address: str = Field(default=KLIMA_ADDRESS, description="Token that gets staked")
    receipt_token_address: str = Field(default=SKLIMA_ADDRESS, description="Staking receipt token")
    staking_contract_address: str = Field(default=STAKE_KLIMA_CONTRACT_ADDRESS, description="Staking contract")

    # Routing and quoting
    allowed_bridges: List[str] = Field(default_factory=lambda: ["connext"])
    allowed_exchanges: List[str] = Field(default_factory=lambda: ["paraswap"])
    slippage: float = Field(default=0.003, ge=0, lt=1, description="Swap slippage tolerance")
    route_selection: str = Field(default="first", description="Route policy: first, max_output or fastest")

    # Polling
    confirmation_poll_interval_seconds: float = Field(default=1.0, gt=0)
    confirmation_max_attempts: int = Field(default=600, ge=1)
    bridge_status_poll_interval_seconds: float = Field(default=10.0, gt=0)
    bridge_status_max_attempts: int = Field(default=360, ge=1)
    settle_poll_attempts: int = Field(
        default=1,
        ge=1,
        description="Destination balance reads before giving up on a stable value (1 = single read)",
    )
    settle_poll_interval_seconds: float = Field(default=15.0, gt=0)

    request_timeout_seconds: int = Field(default=30, description="HTTP request timeout")

    @property
    def has_mnemonic(self) -> bool:
        return bool(self.mnemonic.get_secret_value().strip())


@dataclass
class RunConfig:
    """Validated inputs for a single workflow run."""

    mnemonic: str
    source_chain_id: int
    destination_chain_id: int
    source_rpc_url: str
    destination_rpc_url: str
    bundler_url: str
    bridge_token_symbol: str
    bridge_amount: Decimal
    gas_reserve_amount: Decimal
    stake_cap_amount: Optional[Decimal]
    governance_token_address: str
    receipt_token_address: str
    staking_contract_address: str
    allowed_bridges: List[str] = field(default_factory=list)
    allowed_exchanges: List[str] = field(default_factory=list)
    slippage: float = 0.003
    integrator: str = "lifi-pillar"
    lifi_base_url: str = "https://li.quest/v1"
    lifi_api_key: str = ""
    route_selection: str = "first"
    derivation_path: str = "m/44'/60'/0'/0/0"
    entry_point_address: str = ENTRY_POINT_ADDRESS
    account_factory_address: str = SIMPLE_ACCOUNT_FACTORY_ADDRESS
    account_salt: int = 0
    confirmation_poll_interval_seconds: float = 1.0
    confirmation_max_attempts: int = 600
    bridge_status_poll_interval_seconds: float = 10.0
    bridge_status_max_attempts: int = 360
    settle_poll_attempts: int = 1
    settle_poll_interval_seconds: float = 15.0

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None, **overrides: Any) -> "RunConfig":
        """Build a run config, failing fast before any client is created."""

        source = source or settings
        values = {name: getattr(source, name) for name in cls.__dataclass_fields__ if name != "mnemonic"}
        values["mnemonic"] = source.mnemonic.get_secret_value().strip()
        values.update(overrides)

        missing = [
            name
            for name in ("mnemonic", "source_rpc_url", "destination_rpc_url", "bundler_url")
            if not values.get(name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                missing=missing,
            )

        config = cls(**values)
        config.validate()
        return config

    def validate(self) -> None:
        if self.bridge_amount <= 0:
            raise ConfigurationError("Bridge amount must be positive", bridge_amount=str(self.bridge_amount))
        if self.gas_reserve_amount < 0:
            raise ConfigurationError(
                "Gas reserve must not be negative",
                gas_reserve_amount=str(self.gas_reserve_amount),
            )
        if self.stake_cap_amount is not None and self.stake_cap_amount <= 0:
            raise ConfigurationError("Stake cap must be positive", stake_cap_amount=str(self.stake_cap_amount))
        if not self.allowed_bridges:
            raise ConfigurationError("At least one bridge must be allowed")
        if self.source_chain_id == self.destination_chain_id:
            raise ConfigurationError(
                "Source and destination chains must differ",
                chain_id=self.source_chain_id,
            )


# Global settings instance
settings = Settings()
