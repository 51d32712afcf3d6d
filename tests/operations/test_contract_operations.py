"""
Tests for the contract-based operations: naming helpers, random call
generation, the contract client and the bridge balance watcher.
"""

import base64
import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from eth_abi import encode

from testnet_bot.config import RunConfig, Settings
from testnet_bot.core.execution import BalanceInfo, ContractArtifact, ExecutionError, NetworkConfig, TxResult
from testnet_bot.core.execution.models import WEI_PER_ETHER
from testnet_bot.operations import BridgeOperation, ContractClient, DeployedContract, batch, contract, erc20, nft
from testnet_bot.operations.batch import BATCH_OPERATIONS, generate_batch
from testnet_bot.operations.contract import BOUNDARY_VALUES, CONTRIBUTION_WEI, interaction_call
from testnet_bot.operations.erc20 import generate_token_name, generate_token_symbol, to_base_units
from testnet_bot.operations.nft import burn_count, token_metadata_uri


CONTRACT = "0x3333333333333333333333333333333333333333"
OWNER = "0x2222222222222222222222222222222222222222"

NFT_ABI = [
    {
        "type": "function",
        "name": "ownerOf",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "function",
        "name": "burn",
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "outputs": [],
    },
]


class TestNaming:
    def test_symbol_from_initials(self):
        assert generate_token_symbol("Crypto Coin") == "CC"

    def test_long_symbol_uses_first_word(self):
        assert generate_token_symbol("Alpha Beta Gamma Delta Epsilon Zeta") == "ALPH"

    def test_generated_name_has_two_words(self):
        assert len(generate_token_name().split()) == 2

    def test_base_units(self):
        assert to_base_units(5, 18) == 5 * 10**18
        assert to_base_units(5, 0) == 5


class TestNFTHelpers:
    @pytest.mark.parametrize("minted, pct, expected", [(3, 20, 1), (5, 20, 1), (6, 20, 2), (0, 20, 0), (4, 0, 0)])
    def test_burn_count_rounds_up(self, minted, pct, expected):
        assert burn_count(minted, pct) == expected

    def test_metadata_is_base64_json(self):
        uri = token_metadata_uri(3, "Cosmic Apes")
        prefix = "data:application/json;base64,"

        assert uri.startswith(prefix)
        metadata = json.loads(base64.b64decode(uri[len(prefix):]))
        assert metadata["name"] == "Cosmic Apes #3"
        traits = {a["trait_type"]: a["value"] for a in metadata["attributes"]}
        assert traits["Token ID"] == "3"


class TestRandomCalls:
    def test_batch_parameters_match_operations(self):
        operations, parameters = generate_batch(50)

        assert len(operations) == len(parameters) == 50
        for op, param in zip(operations, parameters):
            assert op in BATCH_OPERATIONS
            if op == "setValue":
                assert 1 <= param <= 100
            elif op == "multiplyValue":
                assert 2 <= param <= 6
            else:
                assert param == 0

    def test_contribute_is_payable(self):
        assert interaction_call("contribute") == ([], CONTRIBUTION_WEI)
        assert CONTRIBUTION_WEI * 100_000 == WEI_PER_ETHER

    def test_set_value_argument_range(self):
        args, value = interaction_call("setValue")
        assert 0 <= args[0] <= 999 and value == 0

    def test_boundary_values_fit_uint256(self):
        assert BOUNDARY_VALUES[0] == 0
        assert max(BOUNDARY_VALUES) == 2**53 - 1


def make_client(send_result, call_result="0x"):
    submitter = MagicMock()
    submitter.network_config = MagicMock(return_value=NetworkConfig("Testnet", "http://node", 1, "TST", "https://x"))
    submitter.call = AsyncMock(return_value=call_result)
    send = AsyncMock(return_value=send_result)
    return ContractClient(submitter, "artifacts", send=send, logger=MagicMock()), send


def nft_contract() -> DeployedContract:
    artifact = ContractArtifact.from_dict("NFTCollection", {"abi": NFT_ABI, "bytecode": "0x00"})
    return DeployedContract(artifact=artifact, address=CONTRACT)


class TestContractClient:
    @pytest.mark.asyncio
    async def test_deploy_returns_address(self, tmp_path):
        (tmp_path / "NFTCollection.json").write_text(json.dumps({"abi": NFT_ABI, "bytecode": "0x6000"}))
        client, send = make_client(TxResult(success=True, tx_hash="0x1", receipt={"contractAddress": CONTRACT}))
        client.artifacts_dir = tmp_path

        deployed = await client.deploy("NFTCollection")

        assert deployed.address == CONTRACT
        assert deployed.name == "NFTCollection"
        assert send.await_args.args[0].to is None

    @pytest.mark.asyncio
    async def test_failed_deploy_raises(self, tmp_path):
        (tmp_path / "NFTCollection.json").write_text(json.dumps({"abi": NFT_ABI, "bytecode": "0x6000"}))
        client, _ = make_client(TxResult(success=False, error="insufficient funds"))
        client.artifacts_dir = tmp_path

        with pytest.raises(ExecutionError, match="insufficient funds"):
            await client.deploy("NFTCollection")

    @pytest.mark.asyncio
    async def test_unknown_method_is_failed_result(self):
        client, send = make_client(TxResult(success=True))

        result = await client.call_method(nft_contract(), "mint", [OWNER, 1])

        assert not result.success
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_view_call_decodes_output(self):
        raw = "0x" + encode(["address"], [OWNER]).hex()
        client, _ = make_client(TxResult(success=True), call_result=raw)

        owner = await client.call_view(nft_contract(), "ownerOf", [1])

        assert owner[0].lower() == OWNER

    @pytest.mark.asyncio
    async def test_view_call_error_is_none(self):
        client, _ = make_client(TxResult(success=True))
        client.submitter.call.side_effect = RuntimeError("execution reverted")

        assert await client.call_view(nft_contract(), "ownerOf", [1]) is None


class TestBridgeMonitoring:
    def make_bridge(self, balances):
        submitter = MagicMock()
        submitter.logger = MagicMock()
        submitter.get_balance = AsyncMock(side_effect=balances)
        bridge = BridgeOperation(submitter, RunConfig())
        bridge.check_interval_seconds = 0
        bridge.max_checks = 3
        return bridge

    @pytest.mark.asyncio
    async def test_completes_when_balance_grows(self):
        bridge = self.make_bridge([
            BalanceInfo(balance=100, currency="TST"),
            BalanceInfo(balance=0, currency="TST", error="timeout"),
            BalanceInfo(balance=100 + WEI_PER_ETHER, currency="TST"),
        ])

        assert await bridge.wait_for_completion(100) is True

    @pytest.mark.asyncio
    async def test_gives_up_after_max_checks(self):
        bridge = self.make_bridge([BalanceInfo(balance=100, currency="TST")] * 3)

        assert await bridge.wait_for_completion(100) is False
        assert bridge.submitter.get_balance.await_count == 3

    @pytest.mark.asyncio
    async def test_missing_inbox_address_fails(self):
        bridge = self.make_bridge([])
        bridge.settings = bridge.settings.model_copy(update={"bridge_inbox_address": ""})

        assert await bridge.bridge_once() is False


@pytest.mark.parametrize("module, artifact", [
    (erc20, erc20.TOKEN_ARTIFACT),
    (nft, nft.NFT_ARTIFACT),
    (batch, batch.BATCH_ARTIFACT),
    (contract, contract.INTERACTIVE_ARTIFACT),
    (contract, contract.TESTER_ARTIFACT),
])
def test_required_artifacts_are_documented(module, artifact):
    assert artifact in module.__doc__
    assert artifact in Settings.model_fields["artifacts_dir"].description
