"""
Wallet operations built on the transaction submitter.

Each operation is a ``BaseOperation`` subclass named after its config
section; ``OperationRegistry`` runs them in the configured order.
"""

from .base import BaseOperation
from .batch import BatchOperation
from .bridge import BridgeOperation
from .contract import ContractDeployOperation, ContractTestingOperation
from .contracts import ContractClient, DeployedContract
from .erc20 import ERC20Operation
from .nft import NFTOperation
from .registry import OPERATION_CLASSES, OperationRegistry
from .transfer import TransferOperation

__all__ = [
    "BaseOperation",
    "BatchOperation",
    "BridgeOperation",
    "ContractClient",
    "ContractDeployOperation",
    "ContractTestingOperation",
    "DeployedContract",
    "ERC20Operation",
    "NFTOperation",
    "OPERATION_CLASSES",
    "OperationRegistry",
    "TransferOperation",
]
