import json
import logging
import random

from decimal import Decimal, ROUND_DOWN
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.execution.models import GasPolicy, Network, NetworkConfig


BASE_DIR = Path(__file__).resolve().parents[1]

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when config.json cannot be read or validated."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="console",
        description="Log renderer: 'console' for colored output, 'json' for JSON lines",
    )

    # Files
    config_path: Path = Field(default=Path("config.json"), description="Run configuration file")
    keys_path: Path = Field(default=Path("data/pk.txt"), description="Private keys, one per line")
    artifacts_dir: Path = Field(
        default=Path("artifacts"),
        description=(
            "Directory holding compiled contract artifacts (<Name>.json with abi/bytecode). "
            "Operations load ERC20Token, NFTCollection, BatchProcessor, InteractiveContract "
            "and ParameterTester; the expected ABI is listed in each operation module"
        ),
    )

    # Primary network (where most operations run)
    primary_name: str = Field(default="Fhenix", description="Display name of the primary network")
    primary_rpc_url: str = Field(
        default="https://api.helium.fhenix.zone",
        description="JSON-RPC endpoint of the primary network",
    )
    primary_chain_id: int = Field(default=8008135, description="Primary network chain ID")
    primary_currency: str = Field(default="tFHE", description="Primary network native currency")
    primary_explorer_url: str = Field(
        default="https://explorer.helium.fhenix.zone",
        description="Block explorer base URL for the primary network",
    )

    # Secondary network (bridge origin)
    secondary_name: str = Field(default="Sepolia", description="Display name of the secondary network")
    secondary_rpc_url: str = Field(
        default="https://ethereum-sepolia-rpc.publicnode.com",
        description="JSON-RPC endpoint of the secondary network",
    )
    secondary_chain_id: int = Field(default=11155111, description="Secondary network chain ID")
    secondary_currency: str = Field(default="ETH", description="Secondary network native currency")
    secondary_explorer_url: str = Field(
        default="https://sepolia.etherscan.io",
        description="Block explorer base URL for the secondary network",
    )

    # Bridge
    bridge_inbox_address: str = Field(
        default="",
        description="Inbox contract on the secondary network receiving deposits (required for bridging)",
    )
    bridge_deposit_data: str = Field(
        default="0x439370b1",
        description="Calldata for the inbox deposit call (depositEth())",
    )

    # Transport / timing
    request_timeout_seconds: float = Field(default=30.0, description="HTTP timeout for RPC calls")
    receipt_timeout_seconds: int = Field(default=300, ge=1, description="Max seconds to wait for a receipt")
    receipt_poll_interval_seconds: float = Field(default=2.0, gt=0, description="Receipt poll interval")
    cycle_hours: float = Field(default=8.0, ge=0, description="Hours to wait between full wallet cycles")

    def network_configs(self) -> dict:
        """Resolve both networks into typed configs keyed by :class:`Network`."""

        return {
            Network.PRIMARY: NetworkConfig(
                name=self.primary_name,
                rpc_url=self.primary_rpc_url,
                chain_id=self.primary_chain_id,
                currency=self.primary_currency,
                explorer_url=self.primary_explorer_url,
            ),
            Network.SECONDARY: NetworkConfig(
                name=self.secondary_name,
                rpc_url=self.secondary_rpc_url,
                chain_id=self.secondary_chain_id,
                currency=self.secondary_currency,
                explorer_url=self.secondary_explorer_url,
            ),
        }


# ---------------------------------------------------------------------------
# Run configuration (config.json)
# ---------------------------------------------------------------------------


class Range(BaseModel):
    """Inclusive min/max range used for randomized parameters."""

    min: float = 1
    max: float = 10

    @model_validator(mode="after")
    def _collapse_inverted(self) -> "Range":
        if self.min > self.max:
            logger.warning(f"Invalid range: min ({self.min}) > max ({self.max}). Using min value.")
            self.max = self.min
        return self

    def random_int(self) -> int:
        return random.randint(int(self.min), int(self.max))

    def random_decimal(self, decimals: int) -> Decimal:
        value = Decimal(str(random.uniform(self.min, self.max)))
        quantum = Decimal(1).scaleb(-decimals)
        return value.quantize(quantum, rounding=ROUND_DOWN)


class AmountRange(Range):
    decimals: int = 5


class DelayConfig(BaseModel):
    min_seconds: int = Field(default=5, ge=0)
    max_seconds: int = Field(default=30, ge=0)


class GeneralConfig(BaseModel):
    gas_price_multiplier: float = Field(default=1.2, gt=0)
    max_retries: int = Field(default=5, ge=0)
    base_wait_time: float = Field(default=10, ge=0)
    delay: DelayConfig = Field(default_factory=DelayConfig)


class GasConfig(BaseModel):
    min_gwei: float = Field(default=1, ge=0)
    max_gwei: float = Field(default=50, gt=0)
    default_gas_limit: int = Field(default=500_000, gt=0)
    retry_increase: float = Field(default=1.3, gt=1)
    strict_nonce: bool = False

    @model_validator(mode="after")
    def _check_band(self) -> "GasConfig":
        if self.min_gwei > self.max_gwei:
            raise ValueError(f"min_gwei ({self.min_gwei}) must not exceed max_gwei ({self.max_gwei})")
        return self


class OperationConfig(BaseModel):
    enabled: bool = True
    repeat_times: int = Field(default=1, ge=1)


class TransferConfig(OperationConfig):
    use_percentage: bool = True
    percentage: int = Field(default=90, ge=0, le=100)
    fixed_amount: AmountRange = Field(default_factory=lambda: AmountRange(min=0.0001, max=0.001, decimals=5))
    count: Range = Field(default_factory=lambda: Range(min=1, max=3))


class ERC20Config(OperationConfig):
    mint_amount: Range = Field(default_factory=lambda: Range(min=1_000_000, max=10_000_000))
    burn_percentage: int = Field(default=10, ge=0, le=100)
    decimals: int = Field(default=18, ge=0, le=36)


class NFTConfig(OperationConfig):
    mint_count: Range = Field(default_factory=lambda: Range(min=2, max=5))
    burn_percentage: int = Field(default=20, ge=0, le=100)
    supply: Range = Field(default_factory=lambda: Range(min=100, max=500))


class BatchConfig(OperationConfig):
    operations_per_batch: Range = Field(default_factory=lambda: Range(min=2, max=3))


class InteractionsConfig(BaseModel):
    enabled: bool = True
    count: Range = Field(default_factory=lambda: Range(min=3, max=8))
    types: List[str] = Field(
        default_factory=lambda: ["setValue", "increment", "decrement", "reset", "contribute"]
    )


class ContractDeployConfig(OperationConfig):
    interactions: InteractionsConfig = Field(default_factory=InteractionsConfig)


class ContractTestingConfig(OperationConfig):
    test_sequences: List[str] = Field(
        default_factory=lambda: ["parameter_variation", "stress_test", "boundary_test"]
    )
    iterations: Range = Field(default_factory=lambda: Range(min=2, max=3))


class BridgeConfig(OperationConfig):
    enabled: bool = False
    amount: AmountRange = Field(default_factory=lambda: AmountRange(min=0.0001, max=0.0004, decimals=7))


class OperationsConfig(BaseModel):
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    contract_deploy: ContractDeployConfig = Field(default_factory=ContractDeployConfig)
    contract_testing: ContractTestingConfig = Field(default_factory=ContractTestingConfig)
    erc20: ERC20Config = Field(default_factory=ERC20Config)
    nft: NFTConfig = Field(default_factory=NFTConfig)
    batch_operations: BatchConfig = Field(default_factory=BatchConfig)


DEFAULT_OPERATION_ORDER = [
    "bridge",
    "transfer",
    "contract_deploy",
    "contract_testing",
    "erc20",
    "nft",
    "batch_operations",
]


class RandomizationConfig(BaseModel):
    """Selects and orders operations. Shuffling is intentionally not supported."""

    operations_to_run: List[str] = Field(default_factory=lambda: list(DEFAULT_OPERATION_ORDER))


class RunConfig(BaseModel):
    operations: OperationsConfig = Field(default_factory=OperationsConfig)
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    gas: GasConfig = Field(default_factory=GasConfig)
    randomization: RandomizationConfig = Field(default_factory=RandomizationConfig)

    def operation(self, name: str) -> Optional[OperationConfig]:
        return getattr(self.operations, name, None)

    def gas_policy(self) -> GasPolicy:
        """Resolve the typed gas policy handed to the transaction submitter."""

        return GasPolicy(
            multiplier=Decimal(str(self.general.gas_price_multiplier)),
            retry_increase=Decimal(str(self.gas.retry_increase)),
            min_gwei=Decimal(str(self.gas.min_gwei)),
            max_gwei=Decimal(str(self.gas.max_gwei)),
            default_gas_limit=self.gas.default_gas_limit,
        )


def load_run_config(path: Optional[Path] = None) -> RunConfig:
    """Read and validate config.json once. Missing file means defaults."""

    path = Path(path or settings.config_path)
    if not path.exists():
        logger.warning(f"No configuration file found at {path}, using defaults")
        return RunConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    try:
        config = RunConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info(f"Loaded configuration from {path}")
    return config


# Global settings instance
settings = Settings()
