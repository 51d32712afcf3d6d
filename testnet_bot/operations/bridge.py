"""Native-token bridge from the secondary network to the primary one."""

import asyncio
from decimal import Decimal

from ..config import BridgeConfig
from ..core.execution import BalanceInfo, Network, TxIntent
from ..core.execution.models import WEI_PER_ETHER
from .base import BaseOperation


class BridgeOperation(BaseOperation):
    name = "bridge"

    check_interval_seconds: float = 30
    max_checks: int = 20
    repeat_delay_seconds: float = 60

    @property
    def config(self) -> BridgeConfig:
        return self.run_config.operations.bridge

    async def get_balances(self) -> tuple[BalanceInfo, BalanceInfo]:
        secondary = await self.submitter.get_balance(Network.SECONDARY)
        primary = await self.submitter.get_balance(Network.PRIMARY)
        self.logger.info(
            "Current balances",
            secondary=f"{secondary.balance_in_eth} {secondary.currency}",
            primary=f"{primary.balance_in_eth} {primary.currency}",
        )
        return secondary, primary

    async def bridge_once(self) -> bool:
        inbox = self.settings.bridge_inbox_address
        if not inbox:
            self.logger.error("Bridge inbox address is not configured (BRIDGE_INBOX_ADDRESS)")
            return False

        amount_range = self.config.amount
        amount_eth = amount_range.random_decimal(amount_range.decimals)
        amount_wei = int(amount_eth * WEI_PER_ETHER)

        secondary, primary = await self.get_balances()
        if secondary.error or primary.error:
            self.logger.error("Failed to get balances, skipping bridge")
            return False
        if secondary.balance < amount_wei:
            self.logger.error(f"Insufficient {secondary.currency} balance to bridge {amount_eth}")
            return False

        self.logger.info(f"Starting bridge of {amount_eth} {secondary.currency}...")
        await self.add_delay("bridge operation")

        intent = TxIntent(to=inbox, value=amount_wei, data=self.settings.bridge_deposit_data)
        result = await self.send(intent, "bridge", Network.SECONDARY)
        if not result.success:
            self.logger.error(f"Bridge transaction failed: {result.error}")
            return False

        self.logger.info(f"Bridge transaction sent: {result.tx_hash}")
        self.logger.info(f"Track on {self.submitter.network_config(Network.SECONDARY).name}: "
                         f"{self.tx_url(result.tx_hash, Network.SECONDARY)}")
        return await self.wait_for_completion(primary.balance)

    async def wait_for_completion(self, initial_balance: int) -> bool:
        """Poll the primary balance until it grows past ``initial_balance``."""
        self.logger.info("Monitoring bridge progress...")

        for check in range(1, self.max_checks + 1):
            await asyncio.sleep(self.check_interval_seconds)

            current = await self.submitter.get_balance(Network.PRIMARY)
            if current.error:
                self.logger.warning(f"Error checking balance: {current.error}")
                continue

            if current.balance > initial_balance:
                received = Decimal(current.balance - initial_balance) / WEI_PER_ETHER
                self.logger.info(f"Bridge completed! Received {received:.4f} {current.currency}")
                return True

            self.logger.info(f"Waiting for bridge completion... ({check}/{self.max_checks})")

        self.logger.warning(
            f"Bridge monitoring timed out after {self.max_checks * self.check_interval_seconds:.0f} seconds"
        )
        return False

    async def execute_operations(self) -> bool:
        self.submitter.reset_nonce(Network.SECONDARY)
        repeat_times = self.config.repeat_times
        self.logger.info(f"Will perform {repeat_times} bridge operations...")

        success_count = 0
        for index in range(repeat_times):
            self.logger.info(f"Bridge operation {index + 1}/{repeat_times}")
            if await self.bridge_once():
                success_count += 1
            if index < repeat_times - 1:
                self.logger.info("Waiting before next bridge operation...")
                await asyncio.sleep(self.repeat_delay_seconds)

        self.logger.info(f"Bridge operations completed: {success_count}/{repeat_times} successful")
        return success_count > 0
