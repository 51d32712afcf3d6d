"""
Tests for BaseOperation: enable check, error containment and the
caller-side retry loop around send_transaction.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from testnet_bot.config import DelayConfig, GeneralConfig, OperationsConfig, RunConfig, TransferConfig
from testnet_bot.core.execution import ErrorDetails, Network, TxIntent, TxResult
from testnet_bot.operations import BaseOperation


def failure(message: str, tx_hash=None) -> TxResult:
    return TxResult(success=False, error=message, details=ErrorDetails(message=message), tx_hash=tx_hash)


SUCCESS = TxResult(success=True, tx_hash="0x01", nonce=5)


class DummySubmitter:
    """Minimal submitter stub for tests."""

    def __init__(self, results):
        self.send_transaction = AsyncMock(side_effect=list(results))
        self.reset_nonce = MagicMock()
        self.logger = MagicMock()


class DummyOperation(BaseOperation):
    name = "transfer"

    def __init__(self, *args, outcome=True, **kwargs):
        super().__init__(*args, **kwargs)
        self.outcome = outcome
        self.calls = 0

    async def execute_operations(self) -> bool:
        self.calls += 1
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def make_run_config(max_retries=3, enabled=True) -> RunConfig:
    return RunConfig(
        general=GeneralConfig(
            max_retries=max_retries,
            base_wait_time=0,
            delay=DelayConfig(min_seconds=0, max_seconds=0),
        ),
        operations=OperationsConfig(transfer=TransferConfig(enabled=enabled)),
    )


def make_operation(results=(), **kwargs) -> DummyOperation:
    run_config = make_run_config(**{k: kwargs.pop(k) for k in ("max_retries", "enabled") if k in kwargs})
    return DummyOperation(DummySubmitter(results), run_config, **kwargs)


class TestSendRetry:
    @pytest.mark.asyncio
    async def test_success_is_not_retried(self):
        op = make_operation([SUCCESS])

        result = await op.send(TxIntent(), "tx")

        assert result.success
        op.submitter.send_transaction.assert_awaited_once()
        op.submitter.reset_nonce.assert_not_called()

    @pytest.mark.asyncio
    async def test_underpriced_retried_with_escalation(self):
        op = make_operation([failure("transaction underpriced"), SUCCESS])

        result = await op.send(TxIntent(), "tx")

        assert result.success
        calls = op.submitter.send_transaction.await_args_list
        assert len(calls) == 2
        assert calls[1].kwargs["retry_count"] == 1
        op.submitter.reset_nonce.assert_called_once_with(Network.PRIMARY)

    @pytest.mark.asyncio
    async def test_nonce_failure_resets_before_retry(self):
        op = make_operation([failure("nonce too low"), SUCCESS])

        await op.send(TxIntent(), "tx", Network.SECONDARY)

        op.submitter.reset_nonce.assert_called_once_with(Network.SECONDARY)

    @pytest.mark.asyncio
    async def test_non_retryable_failure_returned_immediately(self):
        op = make_operation([failure("insufficient funds for gas * price + value")])

        result = await op.send(TxIntent(), "tx")

        assert not result.success
        op.submitter.send_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_broadcast_failure_with_hash_not_resent(self):
        op = make_operation([failure("Timed out waiting for receipt", tx_hash="0xabc")])

        result = await op.send(TxIntent(), "tx")

        assert result.tx_hash == "0xabc"
        op.submitter.send_transaction.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        op = make_operation([failure("connection refused")] * 4, max_retries=3)

        result = await op.send(TxIntent(), "tx")

        assert not result.success
        retry_counts = [c.kwargs.get("retry_count", 0) for c in op.submitter.send_transaction.await_args_list]
        assert retry_counts == [0, 1, 2, 3]


class TestExecute:
    @pytest.mark.asyncio
    async def test_disabled_operation_counts_as_success(self):
        op = make_operation(enabled=False)

        assert await op.execute() is True
        assert op.calls == 0

    @pytest.mark.asyncio
    async def test_execute_resets_nonce_first(self):
        op = make_operation()

        assert await op.execute() is True
        op.submitter.reset_nonce.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_exception_becomes_false(self):
        op = make_operation(outcome=RuntimeError("boom"))

        assert await op.execute() is False
        op.logger.error.assert_called_once()
