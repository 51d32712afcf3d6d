"""
Transaction Submission Layer

Provides the infrastructure for sending on-chain transactions:
- TransactionSubmitter: Nonce, gas price, gas limit, signing and broadcast
- NonceManager: Per-wallet nonce counters with pluggable policies
- TransactionBuilder: Builds intents for transfers, deployments and calls

Usage:
    from testnet_bot.core.execution import (
        TransactionSubmitter,
        TxIntent,
        Network,
    )

    submitter = TransactionSubmitter.from_private_key(key, networks, gas_policy)
    result = await submitter.send_transaction(
        TxIntent(to=submitter.address, value=1),
        label="self-transfer",
    )
    if not result.success:
        print(result.error, result.details)
"""

from .models import (
    Network,
    NetworkConfig,
    GasPolicy,
    TxIntent,
    TxResult,
    ErrorDetails,
    BalanceInfo,
    Quote,
)

from .errors import (
    ExecutionError,
    RpcError,
    TransactionSubmitError,
    TransactionRevertError,
    TransactionTimeoutError,
    FailureKind,
    classify_failure,
    extract_error_details,
    is_retryable,
)

from .gas import (
    apply_gas_buffer,
    compute_gas_price,
)

from .nonce_manager import (
    NonceManager,
    NonceState,
    NoncePolicy,
    OptimisticNoncePolicy,
    StrictNoncePolicy,
)

from .rpc import (
    JsonRpcClient,
)

from .tx_builder import (
    ArtifactError,
    ContractArtifact,
    TransactionBuilder,
)

from .submitter import (
    TransactionSubmitter,
)

__all__ = [
    # Models
    "Network",
    "NetworkConfig",
    "GasPolicy",
    "TxIntent",
    "TxResult",
    "ErrorDetails",
    "BalanceInfo",
    "Quote",
    # Errors
    "ExecutionError",
    "RpcError",
    "TransactionSubmitError",
    "TransactionRevertError",
    "TransactionTimeoutError",
    "FailureKind",
    "classify_failure",
    "extract_error_details",
    "is_retryable",
    # Gas
    "apply_gas_buffer",
    "compute_gas_price",
    # Nonce Manager
    "NonceManager",
    "NonceState",
    "NoncePolicy",
    "OptimisticNoncePolicy",
    "StrictNoncePolicy",
    # Transport
    "JsonRpcClient",
    # Transaction Builder
    "ArtifactError",
    "ContractArtifact",
    "TransactionBuilder",
    # Submitter
    "TransactionSubmitter",
]
