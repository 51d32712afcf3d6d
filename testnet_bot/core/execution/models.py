"""
Transaction submission models and types.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


WEI_PER_GWEI = 10**9
WEI_PER_ETHER = 10**18


class Network(str, Enum):
    """Networks a submitter can talk to."""
    PRIMARY = "primary"          # Where operations run
    SECONDARY = "secondary"      # Bridge origin


@dataclass(frozen=True)
class NetworkConfig:
    """Connection details for one network."""
    name: str
    rpc_url: str
    chain_id: int
    currency: str = "ETH"
    explorer_url: str = ""

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"

    def address_url(self, address: str) -> str:
        return f"{self.explorer_url}/address/{address}"


@dataclass(frozen=True)
class GasPolicy:
    """Resolved gas settings consumed by the submitter."""
    multiplier: Decimal = Decimal("1.2")
    retry_increase: Decimal = Decimal("1.3")     # Applied per retry, must be > 1
    min_gwei: Decimal = Decimal("1")
    max_gwei: Decimal = Decimal("50")
    default_gas_limit: int = 500_000
    estimate_buffer_percent: int = 20

    def __post_init__(self):
        if self.multiplier <= 0:
            raise ValueError("Gas price multiplier must be positive")
        if self.retry_increase <= 1:
            raise ValueError("Retry escalation factor must be greater than 1")
        if self.min_gwei < 0 or self.min_gwei > self.max_gwei:
            raise ValueError("Gas price bounds must satisfy 0 <= min_gwei <= max_gwei")
        if self.default_gas_limit <= 0:
            raise ValueError("Default gas limit must be positive")

    @property
    def min_wei(self) -> int:
        return int(self.min_gwei * WEI_PER_GWEI)

    @property
    def max_wei(self) -> int:
        return int(self.max_gwei * WEI_PER_GWEI)


@dataclass
class TxIntent:
    """What a caller wants sent. ``to=None`` deploys a contract."""
    to: Optional[str] = None
    value: int = 0                              # Wei to send
    data: str = "0x"                            # Encoded calldata (hex)
    gas: Optional[int] = None                   # Explicit gas limit override
    from_address: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.value, str):
            self.value = int(self.value, 16) if self.value.startswith("0x") else int(self.value)
        if self.value < 0:
            raise ValueError("Transaction value must be non-negative")
        if not self.data:
            self.data = "0x"
        elif not self.data.startswith("0x"):
            self.data = f"0x{self.data}"


@dataclass(frozen=True)
class ErrorDetails:
    """Structured fields pulled out of a provider error."""
    message: str
    code: Any = "unknown"
    data: Any = "no data"
    reason: str = "unknown reason"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "data": self.data,
            "reason": self.reason,
        }


@dataclass
class TxResult:
    """Outcome of one ``send_transaction`` call."""
    success: bool
    label: str = "transaction"
    tx_hash: Optional[str] = None
    receipt: Optional[Dict[str, Any]] = None
    nonce: Optional[int] = None
    gas_limit: Optional[int] = None
    gas_price: Optional[int] = None

    # Error info
    error: Optional[str] = None
    details: Optional[ErrorDetails] = None

    @property
    def contract_address(self) -> Optional[str]:
        if not self.receipt:
            return None
        return self.receipt.get("contractAddress")

    @property
    def gas_used(self) -> Optional[int]:
        if not self.receipt or self.receipt.get("gasUsed") is None:
            return None
        gas_used = self.receipt["gasUsed"]
        return int(gas_used, 16) if isinstance(gas_used, str) else int(gas_used)


@dataclass(frozen=True)
class Quote:
    """A value that may have come from the network or from a fallback."""
    value: int
    fallback: bool = False
    error: Optional[str] = None


@dataclass
class BalanceInfo:
    """Native balance of the submitter's account on one network."""
    balance: int
    currency: str
    error: Optional[str] = None
    balance_in_eth: Decimal = field(init=False)

    def __post_init__(self):
        self.balance_in_eth = Decimal(self.balance) / Decimal(WEI_PER_ETHER)
