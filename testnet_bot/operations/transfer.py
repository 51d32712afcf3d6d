"""Native-token self-transfers."""

from decimal import Decimal

from ..config import TransferConfig
from ..core.execution import TransactionBuilder
from ..core.execution.models import WEI_PER_ETHER
from .base import BaseOperation


class TransferOperation(BaseOperation):
    name = "transfer"

    @property
    def config(self) -> TransferConfig:
        return self.run_config.operations.transfer

    async def estimate_gas_cost(self, amount_wei: int) -> int:
        template = self.submitter.build_template(
            TransactionBuilder.build_native_transfer(self.submitter.address, amount_wei),
            nonce=await self.submitter.get_nonce(),
            chain_id=self.submitter.network_config().chain_id,
        )
        gas_limit = await self.submitter.estimate_gas(template)
        gas_price = await self.submitter.get_gas_price()
        return gas_limit * gas_price

    async def calculate_transfer_amount(self, balance_wei: int) -> int:
        """Configured amount minus the estimated gas cost, never below zero."""
        cfg = self.config
        if cfg.use_percentage:
            amount = balance_wei * cfg.percentage // 100
        else:
            amount_eth = cfg.fixed_amount.random_decimal(cfg.fixed_amount.decimals)
            amount = int(amount_eth * WEI_PER_ETHER)

        gas_cost = await self.estimate_gas_cost(amount)
        return amount - gas_cost if amount > gas_cost else 0

    async def execute_transfer(self, number: int, total: int) -> bool:
        balance = await self.submitter.get_balance()
        if balance.error:
            self.logger.error(f"Transfer #{number}/{total} skipped: {balance.error}")
            return False
        if balance.balance == 0:
            self.logger.warning("No balance to transfer")
            return True

        await self.add_delay(f"transfer #{number}/{total}")

        amount = await self.calculate_transfer_amount(balance.balance)
        if amount <= 0:
            self.logger.warning("Balance too low to cover gas")
            return True

        display = Decimal(amount) / WEI_PER_ETHER
        self.logger.info(f"Sending transfer #{number}/{total} of {display} {balance.currency} to self")

        intent = TransactionBuilder.build_native_transfer(self.submitter.address, amount)
        result = await self.send(intent, f"self-transfer #{number}")
        if not result.success:
            self.logger.error(f"Transfer #{number}/{total} failed: {result.error}")
            return False

        self.logger.info(f"Transfer #{number}/{total} successful")
        self.logger.info(f"View transaction: {self.tx_url(result.tx_hash)}")
        return True

    async def execute_operations(self) -> bool:
        cfg = self.config
        count = cfg.count.random_int()
        repeat_times = cfg.repeat_times

        self.logger.info(f"Will perform {count} self-transfers, repeated {repeat_times} time(s)")

        total_success = 0
        for cycle in range(repeat_times):
            self.submitter.reset_nonce()

            for number in range(1, count + 1):
                if await self.execute_transfer(number, count):
                    total_success += 1
                if number < count:
                    await self.add_delay(f"next transfer ({number + 1}/{count})")

            if cycle < repeat_times - 1:
                self.logger.info(f"Completed repeat cycle {cycle + 1}/{repeat_times}")
                await self.add_delay(f"next repeat cycle ({cycle + 2}/{repeat_times})")

        self.logger.info(
            f"Self-transfer operations completed: {total_success}/{count * repeat_times} successful transfers"
        )
        return total_success > 0
