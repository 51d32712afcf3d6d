"""
Generic contract operations.

``ContractDeployOperation`` deploys an ``InteractiveContract`` and performs
random interactions with it. ``ContractTestingOperation`` deploys a
``ParameterTester`` and drives it through value sequences: random parameter
variation, add/subtract stress from a fixed base, and integer boundaries.

Both contracts have no-argument constructors. ``InteractiveContract`` needs
``setValue(uint256)``, ``contribute()`` (payable) and a no-argument function for
every other configured interaction type (``increment``, ``decrement``,
``reset`` by default). ``ParameterTester`` needs ``setValue(uint256)``,
``addValue(uint256)``, ``subtractValue(uint256)`` and ``getValue() -> uint256``.
"""

import random
from typing import Any, Awaitable, Callable, Dict, List, Sequence, Tuple

from ..config import ContractDeployConfig, ContractTestingConfig
from ..core.execution.models import WEI_PER_ETHER
from .base import BaseOperation
from .contracts import DeployedContract

INTERACTIVE_ARTIFACT = "InteractiveContract"
TESTER_ARTIFACT = "ParameterTester"

CONTRIBUTION_WEI = WEI_PER_ETHER // 100_000  # 0.00001 ether

MAX_SAFE_INTEGER = 2**53 - 1

STRESS_BASE_VALUE = 10_000

BOUNDARY_VALUES = [
    0,
    1,
    2**16 - 1,
    2**16,
    2**32 - 1,
    2**32,
    2**48 - 1,
    2**48,
    MAX_SAFE_INTEGER,
]


def interaction_call(interaction: str, rng: random.Random = random) -> Tuple[List[Any], int]:
    """Arguments and wei value for one interaction type."""
    if interaction == "setValue":
        return [rng.randint(0, 999)], 0
    if interaction == "contribute":
        return [], CONTRIBUTION_WEI
    return [], 0


def generate_test_values(rng: random.Random = random) -> List[int]:
    values = [
        0,
        1,
        10,
        100,
        1000,
        10_000,
        2**32 - 1,
        2**48 - 1,
        MAX_SAFE_INTEGER // 2,
        MAX_SAFE_INTEGER,
    ]
    values.extend(rng.randrange(1_000_000) for _ in range(5))
    return values


class ContractDeployOperation(BaseOperation):
    name = "contract_deploy"

    @property
    def config(self) -> ContractDeployConfig:
        return self.run_config.operations.contract_deploy

    async def execute_operations(self) -> bool:
        interactions = self.config.interactions

        await self.add_delay("contract deployment")
        contract = await self.contracts.deploy(INTERACTIVE_ARTIFACT, [], "InteractiveContract")

        if not interactions.enabled:
            self.logger.warning("Contract interactions disabled in config")
            return True
        if not interactions.types:
            self.logger.warning("No contract interaction types configured")
            return True

        count = interactions.count.random_int()
        self.logger.info(f"Will perform {count} interactions with contract...")

        success_count = 0
        for index in range(count):
            interaction = random.choice(interactions.types)
            self.logger.info(f"Interaction {index + 1}/{count}: {interaction}...")
            args, value = interaction_call(interaction)

            await self.add_delay(f"contract interaction ({interaction})")
            result = await self.contracts.call_method(contract, interaction, args, value)
            if result.success:
                self.logger.info(f"{interaction} successful")
                success_count += 1
            else:
                self.logger.error(f"{interaction} failed: {result.error}")

        self.logger.info(f"Contract operations completed: {success_count}/{count} successful interactions")
        return True


class ContractTestingOperation(BaseOperation):
    name = "contract_testing"

    @property
    def config(self) -> ContractTestingConfig:
        return self.run_config.operations.contract_testing

    async def _call_and_verify(self, tester: DeployedContract, method: str, args: Sequence[Any], context: str) -> bool:
        call_text = f"{method}({', '.join(str(a) for a in args)})"
        result = await self.contracts.call_method(tester, method, args)
        if not result.success:
            self.logger.error(f"{context} failed for {call_text}: {result.error}")
            return False

        self.logger.info(f"{context} successful: {call_text}")
        value = await self.contracts.call_view(tester, "getValue")
        if value is not None:
            self.logger.info(f"Current value: {value[0]}")
        return True

    async def parameter_variation(self, tester: DeployedContract) -> bool:
        self.logger.info("Starting parameter variation tests...")
        test_values = generate_test_values()
        iterations = self.config.iterations.random_int()
        self.logger.info(f"Will perform {iterations} iterations of parameter variation tests...")

        success_count = 0
        for index in range(iterations):
            value = random.choice(test_values)
            await self.add_delay(f"parameter test {index + 1}/{iterations}")
            if await self._call_and_verify(tester, "setValue", [value], "Parameter test"):
                success_count += 1

        self.logger.info(f"Parameter variation tests completed: {success_count}/{iterations} successful")
        return success_count > 0

    async def stress_test(self, tester: DeployedContract) -> bool:
        self.logger.info("Starting stress tests...")
        iterations = self.config.iterations.random_int()
        self.logger.info(f"Will perform {iterations} iterations of stress tests...")

        base = await self.contracts.call_method(tester, "setValue", [STRESS_BASE_VALUE])
        if not base.success:
            self.logger.error(f"Failed to set base value for stress tests: {base.error}")
            return False
        self.logger.info(f"Base value set to {STRESS_BASE_VALUE}")

        success_count = 0
        for index in range(iterations):
            method = random.choice(["addValue", "subtractValue"])
            await self.add_delay(f"stress test {index + 1}/{iterations}")
            if await self._call_and_verify(tester, method, [random.randint(1, 100)], "Stress test"):
                success_count += 1

        self.logger.info(f"Stress tests completed: {success_count}/{iterations} successful")
        return success_count > 0

    async def boundary_test(self, tester: DeployedContract) -> bool:
        self.logger.info("Starting boundary tests...")
        total = len(BOUNDARY_VALUES)
        self.logger.info(f"Will test {total} boundary values...")

        success_count = 0
        for index, value in enumerate(BOUNDARY_VALUES):
            await self.add_delay(f"boundary test {index + 1}/{total}")
            if await self._call_and_verify(tester, "setValue", [value], "Boundary test"):
                success_count += 1

        self.logger.info(f"Boundary tests completed: {success_count}/{total} successful")
        return success_count > 0

    def sequences(self) -> Dict[str, Callable[[DeployedContract], Awaitable[bool]]]:
        return {
            "parameter_variation": self.parameter_variation,
            "stress_test": self.stress_test,
            "boundary_test": self.boundary_test,
        }

    async def execute_operations(self) -> bool:
        await self.add_delay("test contract deployment")
        tester = await self.contracts.deploy(TESTER_ARTIFACT, [], "parameter tester contract")

        available = self.sequences()
        selected = self.config.test_sequences
        self.logger.info(f"Will run the following test sequences: {', '.join(selected)}")

        results: Dict[str, bool] = {}
        for sequence in selected:
            runner = available.get(sequence)
            if runner is None:
                self.logger.warning(f"Unknown test sequence: {sequence}")
                continue
            results[sequence] = await runner(tester)

        self.logger.info("Contract testing operations completed!")
        self.logger.info(f"Contract address: {tester.address}")
        self.logger.info(f"View contract: {self.address_url(tester.address)}")
        for sequence, passed in results.items():
            self.logger.info(f"- {sequence}: {'Successful' if passed else 'Failed'}")
        return True
