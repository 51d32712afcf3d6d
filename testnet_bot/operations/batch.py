"""
BatchProcessor deployment and batched state changes.

Expects ``artifacts/BatchProcessor.json`` with a no-argument constructor and:

* ``setValue(uint256 value)``
* ``executeBatch(string[] operations, uint256[] parameters)``
* ``getStatus() -> (uint256 operationCount, uint256 lastValue)``
"""

import random
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..config import BatchConfig
from .base import BaseOperation
from .contracts import DeployedContract

BATCH_ARTIFACT = "BatchProcessor"

BATCH_OPERATIONS = [
    "setValue",
    "incrementValue",
    "decrementValue",
    "squareValue",
    "resetValue",
    "multiplyValue",
]


def operation_parameter(operation: str, rng: random.Random = random) -> int:
    if operation == "setValue":
        return rng.randint(1, 100)
    if operation == "multiplyValue":
        return rng.randint(2, 6)
    return 0


def generate_batch(size: int, rng: random.Random = random) -> Tuple[List[str], List[int]]:
    """Random operations with one parameter each (0 where unused)."""
    operations = [rng.choice(BATCH_OPERATIONS) for _ in range(size)]
    return operations, [operation_parameter(op, rng) for op in operations]


@dataclass
class BatchOutcome:
    success: bool
    tx_hash: Optional[str] = None
    operations: List[str] = field(default_factory=list)
    parameters: List[int] = field(default_factory=list)
    status: Optional[Tuple[int, int]] = None
    error: Optional[str] = None


class BatchOperation(BaseOperation):
    name = "batch_operations"

    @property
    def config(self) -> BatchConfig:
        return self.run_config.operations.batch_operations

    async def read_status(self, processor: DeployedContract, context: str) -> Optional[Tuple[int, int]]:
        status = await self.contracts.call_view(processor, "getStatus")
        if status is not None:
            self.logger.info(f"{context} - Operation count: {status[0]}, Last value: {status[1]}")
        return status

    async def test_individual_operation(self, processor: DeployedContract) -> BatchOutcome:
        self.logger.info("Testing individual operations...")
        await self.add_delay("individual operation test")

        result = await self.contracts.call_method(processor, "setValue", [random.randint(1, 100)])
        if not result.success:
            self.logger.error(f"Error testing individual operations: {result.error}")
            return BatchOutcome(success=False, error=result.error)

        self.logger.info("setValue operation successful")
        status = await self.read_status(processor, "Current status")
        return BatchOutcome(success=True, tx_hash=result.tx_hash, status=status)

    async def execute_batch(self, processor: DeployedContract) -> BatchOutcome:
        size = self.config.operations_per_batch.random_int()
        self.logger.info(f"Generating batch with {size} operations...")
        operations, parameters = generate_batch(size)

        self.logger.info(f"Executing batch operations: {', '.join(operations)}...")
        await self.add_delay("batch execution")

        result = await self.contracts.call_method(processor, "executeBatch", [operations, parameters])
        if not result.success:
            self.logger.error(f"Error executing batch operations: {result.error}")
            return BatchOutcome(success=False, operations=operations, parameters=parameters, error=result.error)

        self.logger.info("Batch execution successful")
        status = await self.read_status(processor, "Status after batch execution")
        return BatchOutcome(
            success=True,
            tx_hash=result.tx_hash,
            operations=operations,
            parameters=parameters,
            status=status,
        )

    async def execute_batches(self, processor: DeployedContract) -> List[BatchOutcome]:
        count = random.randint(1, 2)
        self.logger.info(f"Will execute {count} batch operations...")

        outcomes = []
        for index in range(count):
            self.logger.info(f"Executing batch {index + 1}/{count}...")
            outcomes.append(await self.execute_batch(processor))
            if index < count - 1:
                await self.add_delay(f"next batch ({index + 2}/{count})")
        return outcomes

    async def execute_operations(self) -> bool:
        self.logger.info("Step 1: Deploying batch processor contract...")
        await self.add_delay("batch processor deployment")
        processor = await self.contracts.deploy(BATCH_ARTIFACT, [], "batch processor")

        self.logger.info("Step 2: Testing individual operations...")
        await self.test_individual_operation(processor)

        self.logger.info("Step 3: Executing multiple batches...")
        outcomes = await self.execute_batches(processor)
        succeeded = sum(1 for outcome in outcomes if outcome.success)

        self.logger.info(f"Batches executed: {succeeded}/{len(outcomes)} successful")
        self.logger.info(f"Batch processor: {processor.address}")
        self.logger.info(f"View contract: {self.address_url(processor.address)}")
        return True
