"""
Tests for TransactionSubmitter: nonce sequencing, gas fallbacks and
failure reporting.
"""

from decimal import Decimal

import httpx
import pytest
from eth_account import Account
from unittest.mock import AsyncMock, MagicMock

from testnet_bot.config import GeneralConfig, RunConfig
from testnet_bot.core.execution import (
    FailureKind,
    GasPolicy,
    Network,
    NetworkConfig,
    RpcError,
    StrictNoncePolicy,
    TransactionSubmitter,
    TxIntent,
    classify_failure,
)
from testnet_bot.core.execution.models import WEI_PER_ETHER, WEI_PER_GWEI
from testnet_bot.operations import TransferOperation


TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
RECIPIENT = "0x2222222222222222222222222222222222222222"
TX_HASH = "0x" + "ab" * 32

NETWORKS = {
    Network.PRIMARY: NetworkConfig(
        name="Testnet",
        rpc_url="http://localhost:8545",
        chain_id=1337,
        currency="TST",
        explorer_url="https://explorer.test",
    ),
}


def make_rpc(nonce=5, gas_price=10 * WEI_PER_GWEI, estimate=21000, receipt=None):
    """RPC client stub with AsyncMock methods."""
    rpc = MagicMock()
    rpc.get_transaction_count = AsyncMock(return_value=nonce)
    rpc.gas_price = AsyncMock(return_value=gas_price)
    rpc.estimate_gas = AsyncMock(return_value=estimate)
    rpc.send_raw_transaction = AsyncMock(return_value=TX_HASH)
    rpc.get_transaction_receipt = AsyncMock(
        return_value=receipt if receipt is not None else {"status": "0x1", "gasUsed": "0x5208"}
    )
    rpc.get_balance = AsyncMock(return_value=2 * WEI_PER_ETHER)
    rpc.eth_call = AsyncMock(return_value="0x")
    rpc.close = AsyncMock()
    return rpc


def make_submitter(rpc, **kwargs):
    kwargs.setdefault("receipt_poll_interval", 0)
    return TransactionSubmitter.from_private_key(
        TEST_KEY,
        NETWORKS,
        GasPolicy(),
        rpc_clients={Network.PRIMARY: rpc},
        **kwargs,
    )


@pytest.mark.asyncio
async def test_sequential_sends_use_contiguous_nonces():
    rpc = make_rpc(nonce=5)
    submitter = make_submitter(rpc)

    first = await submitter.send_transaction(TxIntent(to=RECIPIENT, value=1), "first")
    second = await submitter.send_transaction(TxIntent(to=RECIPIENT, value=1), "second")

    assert first.success and second.success
    assert (first.nonce, second.nonce) == (5, 6)
    assert submitter.nonces.get_state().value == 7
    rpc.get_transaction_count.assert_awaited_once_with(submitter.address, "latest")


@pytest.mark.asyncio
async def test_nonce_incremented_before_broadcast():
    rpc = make_rpc(nonce=5)
    submitter = make_submitter(rpc, wait_for_receipt=False)
    seen = []

    async def broadcast(raw_tx):
        seen.append(submitter.nonces.get_state().value)
        return TX_HASH

    rpc.send_raw_transaction.side_effect = broadcast

    await submitter.send_transaction(TxIntent(to=RECIPIENT, value=1))
    await submitter.send_transaction(TxIntent(to=RECIPIENT, value=1))

    assert seen == [6, 7]


@pytest.mark.asyncio
async def test_many_sends_have_strictly_increasing_nonces():
    rpc = make_rpc(nonce=11)
    submitter = make_submitter(rpc, wait_for_receipt=False)

    results = [await submitter.send_transaction(TxIntent(to=RECIPIENT)) for _ in range(8)]

    assert [r.nonce for r in results] == list(range(11, 19))


@pytest.mark.asyncio
async def test_successful_result_carries_gas_and_receipt():
    rpc = make_rpc(gas_price=10 * WEI_PER_GWEI, estimate=21000)
    submitter = make_submitter(rpc)

    result = await submitter.send_transaction(TxIntent(to=RECIPIENT, value=1), "transfer")

    assert result.tx_hash == TX_HASH
    assert result.gas_price == 12 * WEI_PER_GWEI
    assert result.gas_limit == 25200
    assert result.gas_used == 21000
    raw_tx = rpc.send_raw_transaction.await_args.args[0]
    assert raw_tx.startswith("0x")


@pytest.mark.asyncio
async def test_estimate_failure_uses_default_gas_limit():
    rpc = make_rpc()
    rpc.estimate_gas.side_effect = RpcError("execution reverted", code=3)
    submitter = make_submitter(rpc)

    result = await submitter.send_transaction(TxIntent(to=RECIPIENT, data="0x1234"))

    assert result.success
    assert result.gas_limit == 500_000


@pytest.mark.asyncio
async def test_estimate_gas_returns_default_on_error():
    rpc = make_rpc()
    rpc.estimate_gas.side_effect = httpx.ConnectError("refused")
    submitter = make_submitter(rpc)

    gas = await submitter.estimate_gas({"from": submitter.address, "nonce": 0, "value": 0})

    assert gas == submitter.gas_policy.default_gas_limit


@pytest.mark.asyncio
async def test_gas_price_failure_falls_back_to_min():
    rpc = make_rpc()
    rpc.gas_price.side_effect = httpx.ConnectError("refused")
    submitter = make_submitter(rpc)

    quote = await submitter.quote_gas_price()

    assert quote.fallback
    assert quote.value == 1 * WEI_PER_GWEI


@pytest.mark.asyncio
async def test_gas_price_clamped_to_policy_max():
    rpc = make_rpc(gas_price=1000 * WEI_PER_GWEI)
    submitter = make_submitter(rpc)

    assert await submitter.get_gas_price() == 50 * WEI_PER_GWEI
    assert await submitter.get_gas_price(retry_count=3) == 50 * WEI_PER_GWEI


@pytest.mark.asyncio
async def test_explicit_gas_skips_estimation():
    rpc = make_rpc()
    submitter = make_submitter(rpc)

    result = await submitter.send_transaction(TxIntent(to=RECIPIENT, gas=90_000))

    assert result.gas_limit == 90_000
    rpc.estimate_gas.assert_not_awaited()


@pytest.mark.asyncio
async def test_broadcast_failure_is_reported_and_counter_stays_ahead():
    rpc = make_rpc(nonce=5)
    rpc.send_raw_transaction.side_effect = RpcError("replacement transaction underpriced", code=-32000)
    submitter = make_submitter(rpc)

    result = await submitter.send_transaction(TxIntent(to=RECIPIENT), "doomed")

    assert not result.success
    assert result.nonce == 5
    assert result.details.code == -32000
    assert classify_failure(result) == FailureKind.UNDERPRICED
    # Optimistic policy does not reconcile after a failed broadcast
    assert submitter.nonces.get_state().value == 6


@pytest.mark.asyncio
async def test_strict_policy_refetches_after_broadcast_failure():
    rpc = make_rpc(nonce=5)
    rpc.send_raw_transaction.side_effect = [RpcError("connection reset"), TX_HASH]
    submitter = make_submitter(rpc, nonce_policy=StrictNoncePolicy())

    failed = await submitter.send_transaction(TxIntent(to=RECIPIENT))
    retried = await submitter.send_transaction(TxIntent(to=RECIPIENT))

    assert not failed.success
    assert retried.success
    assert retried.nonce == 5
    assert rpc.get_transaction_count.await_count == 2


@pytest.mark.asyncio
async def test_nonce_fetch_failure_stops_before_signing():
    rpc = make_rpc()
    rpc.get_transaction_count.side_effect = httpx.ConnectError("refused")
    submitter = make_submitter(rpc)

    result = await submitter.send_transaction(TxIntent(to=RECIPIENT))

    assert not result.success
    assert result.nonce is None
    rpc.send_raw_transaction.assert_not_awaited()
    assert classify_failure(result) == FailureKind.NETWORK


@pytest.mark.asyncio
async def test_reverted_receipt_fails_but_keeps_hash():
    rpc = make_rpc(receipt={"status": "0x0"})
    submitter = make_submitter(rpc)

    result = await submitter.send_transaction(TxIntent(to=RECIPIENT))

    assert not result.success
    assert result.tx_hash == TX_HASH
    assert classify_failure(result) == FailureKind.REVERTED


@pytest.mark.asyncio
async def test_missing_receipt_times_out():
    rpc = make_rpc()
    rpc.get_transaction_receipt = AsyncMock(return_value=None)
    submitter = make_submitter(rpc, receipt_timeout_seconds=0)

    result = await submitter.send_transaction(TxIntent(to=RECIPIENT))

    assert not result.success
    assert result.tx_hash == TX_HASH
    assert classify_failure(result) == FailureKind.TIMEOUT


@pytest.mark.asyncio
async def test_deployment_result_exposes_contract_address():
    contract = "0x3333333333333333333333333333333333333333"
    rpc = make_rpc(receipt={"status": "0x1", "contractAddress": contract})
    submitter = make_submitter(rpc)

    result = await submitter.send_transaction(TxIntent(to=None, data="0x6000"), "deploy")

    assert result.success
    assert result.contract_address == contract
    sent_call = rpc.estimate_gas.await_args.args[0]
    assert "to" not in sent_call


@pytest.mark.asyncio
async def test_unknown_network_is_reported_as_failure():
    submitter = make_submitter(make_rpc())

    result = await submitter.send_transaction(TxIntent(to=RECIPIENT), network=Network.SECONDARY)

    assert not result.success
    assert "secondary" in result.error


class TestBalance:
    @pytest.mark.asyncio
    async def test_balance_in_native_units(self):
        submitter = make_submitter(make_rpc())

        info = await submitter.get_balance()

        assert info.balance == 2 * WEI_PER_ETHER
        assert info.balance_in_eth == Decimal(2)
        assert info.currency == "TST"
        assert info.error is None

    @pytest.mark.asyncio
    async def test_balance_error_is_reported(self):
        rpc = make_rpc()
        rpc.get_balance.side_effect = httpx.ConnectError("refused")
        submitter = make_submitter(rpc)

        info = await submitter.get_balance()

        assert info.balance == 0
        assert "refused" in info.error


def test_from_private_key_accepts_unprefixed_key():
    submitter = TransactionSubmitter.from_private_key(
        TEST_KEY[2:], NETWORKS, rpc_clients={Network.PRIMARY: make_rpc()}
    )
    assert submitter.address == Account.from_key(TEST_KEY).address


def test_template_hex_encodes_quantities_for_rpc():
    submitter = make_submitter(make_rpc())
    template = submitter.build_template(TxIntent(to=RECIPIENT, value=16), nonce=2, chain_id=1337)

    call = TransactionSubmitter._to_rpc_call(template)

    assert call["value"] == "0x10"
    assert call["nonce"] == "0x2"
    assert call["chainId"] == hex(1337)
    assert call["data"] == "0x"


class TestFailuresAfterBroadcast:
    @pytest.mark.asyncio
    async def test_receipt_poll_error_is_polled_through(self):
        rpc = make_rpc()
        rpc.get_transaction_receipt = AsyncMock(
            side_effect=[httpx.ConnectError("refused"), {"status": "0x1", "gasUsed": "0x5208"}]
        )
        submitter = make_submitter(rpc)

        result = await submitter.send_transaction(TxIntent(to=RECIPIENT, value=1))

        assert result.success
        assert result.tx_hash == TX_HASH
        rpc.send_raw_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_receipt_poll_errors_keep_hash_and_are_not_resent(self):
        rpc = make_rpc()
        rpc.get_transaction_receipt = AsyncMock(side_effect=httpx.ConnectError("refused"))
        submitter = make_submitter(rpc, receipt_timeout_seconds=0)
        operation = TransferOperation(
            submitter, RunConfig(general=GeneralConfig(max_retries=3, base_wait_time=0))
        )

        result = await operation.send(TxIntent(to=RECIPIENT, value=1), "transfer")

        assert not result.success
        assert result.tx_hash == TX_HASH
        rpc.send_raw_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_strict_policy_keeps_nonce_of_pending_transaction(self):
        rpc = make_rpc(nonce=5)
        rpc.get_transaction_receipt = AsyncMock(return_value=None)
        submitter = make_submitter(rpc, nonce_policy=StrictNoncePolicy(), receipt_timeout_seconds=0)

        timed_out = await submitter.send_transaction(TxIntent(to=RECIPIENT))
        submitter.wait_for_receipt = False
        following = await submitter.send_transaction(TxIntent(to=RECIPIENT))

        assert not timed_out.success
        assert timed_out.tx_hash == TX_HASH
        assert following.nonce == 6
        rpc.get_transaction_count.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rejected_broadcast_has_no_hash(self):
        rpc = make_rpc()
        rpc.send_raw_transaction.side_effect = httpx.ConnectError("refused")
        submitter = make_submitter(rpc)

        result = await submitter.send_transaction(TxIntent(to=RECIPIENT))

        assert result.tx_hash is None
        assert result.error == "refused"
        assert classify_failure(result) == FailureKind.NETWORK
