"""
Base class for wallet operations.

Subclasses implement ``execute_operations``; ``execute`` wraps it with the
enabled check, a nonce reset and uniform error handling. All transactions go
through ``send``, which adds the caller-side retry loop on top of the
submitter.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from ..config import OperationConfig, RunConfig, Settings, settings as default_settings
from ..core.execution import (
    Network,
    TransactionSubmitter,
    TxIntent,
    TxResult,
    classify_failure,
)
from ..core.execution.errors import RETRYABLE_FAILURES
from ..utils.delay import add_random_delay
from .contracts import ContractClient


class BaseOperation(ABC):
    """One named activity run for a single wallet."""

    name: str = ""

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
        self.contracts = ContractClient(
            submitter, self.settings.artifacts_dir, send=self.send, logger=self.logger
        )

    @property
    def config(self) -> Optional[OperationConfig]:
        return self.run_config.operation(self.name)

    def is_enabled(self) -> bool:
        cfg = self.config
        return bool(cfg and cfg.enabled)

    async def add_delay(self, message: str) -> int:
        return await add_random_delay(self.run_config.general.delay, self.logger, message)

    def tx_url(self, tx_hash: Optional[str], network: Network = Network.PRIMARY) -> str:
        return self.submitter.network_config(network).tx_url(tx_hash or "")

    def address_url(self, address: str, network: Network = Network.PRIMARY) -> str:
        return self.submitter.network_config(network).address_url(address)

    async def execute(self) -> bool:
        """Run the operation. Disabled operations count as success."""
        if not self.is_enabled():
            self.logger.warning(f"{self.name} operations disabled in config")
            return True

        self.logger.info(f"Starting {self.name} operations...")

        try:
            self.submitter.reset_nonce()
            result = await self.execute_operations()
        except Exception as e:
            self.logger.error(f"Error in {self.name} operations: {e}")
            return False

        if result:
            self.logger.info(f"{self.name} operations completed successfully!")
        return result

    @abstractmethod
    async def execute_operations(self) -> bool:
        """Operation-specific work."""

    async def send(
        self,
        intent: TxIntent,
        label: str,
        network: Network = Network.PRIMARY,
    ) -> TxResult:
        """
        Submit ``intent``, re-submitting retryable failures with escalated gas.

        A failure that already has a transaction hash was broadcast and is not
        re-sent. Before each retry the nonce is reset so the re-submission
        reuses the nonce the failed attempt consumed.
        """
        general = self.run_config.general
        result = await self.submitter.send_transaction(intent, label, network)

        attempt = 0
        while not result.success and attempt < general.max_retries:
            kind = classify_failure(result)
            if kind not in RETRYABLE_FAILURES or result.tx_hash:
                break

            attempt += 1
            wait = general.base_wait_time * attempt
            self.logger.warning(
                f"Retrying {label} ({attempt}/{general.max_retries}) after {kind.value} failure "
                f"in {wait:.0f}s"
            )
            self.submitter.reset_nonce(network)
            await asyncio.sleep(wait)
            result = await self.submitter.send_transaction(intent, label, network, retry_count=attempt)

        return result
