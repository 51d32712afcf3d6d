"""
Contract deployment and interaction on top of the transaction submitter.

Artifacts are loaded from ``<artifacts_dir>/<Name>.json``. State-changing
calls go through the ``send`` callable handed in by the operation, so they
share its retry behaviour.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Tuple

import structlog

from ..core.execution import (
    ContractArtifact,
    ExecutionError,
    Network,
    TransactionBuilder,
    TransactionSubmitter,
    TxIntent,
    TxResult,
)
from ..core.execution.tx_builder import decode_output, encode_function_call

Sender = Callable[[TxIntent, str], Awaitable[TxResult]]


@dataclass
class DeployedContract:
    artifact: ContractArtifact
    address: str
    tx_hash: Optional[str] = None

    @property
    def name(self) -> str:
        return self.artifact.name


class ContractClient:
    """Deploys artifacts and calls their methods for one wallet."""

    def __init__(
        self,
        submitter: TransactionSubmitter,
        artifacts_dir: Path,
        send: Optional[Sender] = None,
        logger=None,
    ):
        self.submitter = submitter
        self.artifacts_dir = Path(artifacts_dir)
        self._send = send or submitter.send_transaction
        self.logger = logger or structlog.get_logger(__name__)
        self._artifacts: Dict[str, ContractArtifact] = {}

    def load(self, name: str) -> ContractArtifact:
        if name not in self._artifacts:
            self._artifacts[name] = ContractArtifact.load(self.artifacts_dir, name)
        return self._artifacts[name]

    async def deploy(
        self,
        name: str,
        constructor_args: Sequence[Any] = (),
        label: Optional[str] = None,
    ) -> DeployedContract:
        """
        Deploy artifact ``name``.

        Raises:
            ArtifactError: Artifact missing or constructor arguments mismatched
            ExecutionError: Deployment failed or no contract address in the receipt
        """
        label = label or name
        artifact = self.load(name)
        self.logger.info(f"Deploying {label} contract...")

        intent = TransactionBuilder.build_deployment(artifact, constructor_args)
        result = await self._send(intent, f"{label} deployment")
        if not result.success:
            raise ExecutionError(f"{label} deployment failed: {result.error}")
        if not result.contract_address:
            raise ExecutionError(f"{label} deployment receipt has no contract address")

        cfg = self.submitter.network_config(Network.PRIMARY)
        self.logger.info(f"{label} contract deployed at: {result.contract_address}")
        self.logger.info(f"View transaction: {cfg.tx_url(result.tx_hash)}")
        return DeployedContract(artifact=artifact, address=result.contract_address, tx_hash=result.tx_hash)

    async def call_method(
        self,
        contract: DeployedContract,
        method: str,
        args: Sequence[Any] = (),
        value: int = 0,
    ) -> TxResult:
        """Send a state-changing call. Failures come back as a failed result."""
        try:
            intent = TransactionBuilder.build_contract_call(
                contract.address, contract.artifact, method, args, value
            )
        except Exception as e:
            self.logger.error(f"Error calling {method}: {e}")
            return TxResult(success=False, label=method, error=str(e))

        result = await self._send(intent, method)
        if result.success:
            cfg = self.submitter.network_config(Network.PRIMARY)
            self.logger.info(f"View transaction: {cfg.tx_url(result.tx_hash)}")
        return result

    async def call_view(
        self,
        contract: DeployedContract,
        method: str,
        args: Sequence[Any] = (),
    ) -> Optional[Tuple[Any, ...]]:
        """Read-only call returning decoded outputs, or ``None`` on error."""
        self.logger.info(f"Calling view method: {method}")
        try:
            entry, data = encode_function_call(contract.artifact, method, args)
            raw = await self.submitter.call(contract.address, data)
            return decode_output(entry, raw)
        except Exception as e:
            self.logger.error(f"Error calling view method {method}: {e}")
            return None
