"""Operation Registry for running a wallet's configured operations.

This module provides:
- OperationRegistry: Builds every known operation for one wallet
- Selection by ``randomization.operations_to_run`` (order and filter)
- Sequential execution that never lets one operation stop the rest
"""

from typing import Dict, List, Optional, Type

from ..config import RunConfig, Settings, settings as default_settings
from ..core.execution import TransactionSubmitter
from .base import BaseOperation
from .batch import BatchOperation
from .bridge import BridgeOperation
from .contract import ContractDeployOperation, ContractTestingOperation
from .erc20 import ERC20Operation
from .nft import NFTOperation
from .transfer import TransferOperation

OPERATION_CLASSES: List[Type[BaseOperation]] = [
    BridgeOperation,
    TransferOperation,
    ContractDeployOperation,
    ContractTestingOperation,
    ERC20Operation,
    NFTOperation,
    BatchOperation,
]


class OperationRegistry:
    """Registry of operations for one wallet.

    Usage:
        registry = OperationRegistry(submitter, run_config, logger=wallet_logger)
        ok = await registry.execute_all()

    Attributes:
        _operations: Dict of operation name -> instance, in registration order
    """

    def __init__(
        self,
        submitter: TransactionSubmitter,
        run_config: RunConfig,
        settings: Optional[Settings] = None,
        logger=None,
    ):
        self.submitter = submitter
        self.run_config = run_config
        self.settings = settings or default_settings
        self.logger = logger or submitter.logger

        self._operations: Dict[str, BaseOperation] = {}
        for operation_cls in OPERATION_CLASSES:
            self.add_operation(operation_cls(submitter, run_config, self.settings, self.logger))

    def add_operation(self, operation: BaseOperation) -> None:
        """Register ``operation``, replacing any existing one with the same name."""
        self._operations[operation.name] = operation

    def get_operation(self, name: str) -> Optional[BaseOperation]:
        return self._operations.get(name)

    def list_operations(self) -> List[str]:
        return list(self._operations)

    def selected_operations(self) -> List[BaseOperation]:
        """Enabled operations in ``operations_to_run`` order. Unknown names are skipped."""
        selected = []
        for name in self.run_config.randomization.operations_to_run:
            operation = self._operations.get(name)
            if operation is None:
                self.logger.warning(f"Unknown operation in operations_to_run: {name}")
                continue
            if operation.is_enabled():
                selected.append(operation)
        return selected

    async def execute_all(self) -> bool:
        """Run the selected operations in order. True only if every one succeeded."""
        operations = self.selected_operations()
        self.logger.info(f"Operations sequence: {' -> '.join(op.name for op in operations)}")

        success = True
        for operation in operations:
            try:
                if not await operation.execute():
                    success = False
            except Exception as e:
                self.logger.error(f"Error in {operation.name} operation: {e}")
                success = False
        return success
