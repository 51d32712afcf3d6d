import io

import pytest
from unittest.mock import AsyncMock, patch

from testnet_bot import runner
from testnet_bot.cli import build_parser
from testnet_bot.config import DelayConfig, GasConfig, RunConfig, Settings
from testnet_bot.core.execution import OptimisticNoncePolicy, StrictNoncePolicy
from testnet_bot.utils.delay import add_random_delay, countdown, format_remaining


TEST_KEY = "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


def test_keys_loaded_with_prefix_and_blank_lines_skipped(tmp_path):
    path = tmp_path / "pk.txt"
    path.write_text(f"{TEST_KEY}\n\n  0x{TEST_KEY}  \n")

    keys = runner.load_private_keys(path)

    assert keys == [f"0x{TEST_KEY}", f"0x{TEST_KEY}"]


def test_missing_key_file(tmp_path):
    with pytest.raises(runner.KeyFileError):
        runner.load_private_keys(tmp_path / "pk.txt")


def test_empty_key_file(tmp_path):
    path = tmp_path / "pk.txt"
    path.write_text("\n\n")

    with pytest.raises(runner.KeyFileError):
        runner.load_private_keys(path)


def test_submitter_uses_configured_nonce_policy():
    settings = Settings()

    optimistic = runner.build_submitter(TEST_KEY, RunConfig(), settings)
    strict = runner.build_submitter(TEST_KEY, RunConfig(gas=GasConfig(strict_nonce=True)), settings)

    assert isinstance(optimistic.nonce_policy, OptimisticNoncePolicy)
    assert isinstance(strict.nonce_policy, StrictNoncePolicy)
    assert optimistic.address == strict.address


@pytest.mark.asyncio
async def test_wallets_processed_in_order_and_numbered():
    with patch.object(runner, "wait_between_wallets", AsyncMock()), \
         patch.object(runner, "run_wallet", AsyncMock(side_effect=[False, True])) as run_wallet:
        results = await runner.run_wallets(["0xbad", f"0x{TEST_KEY}"], RunConfig(), Settings())

    assert results == [False, True]
    assert run_wallet.await_args_list[1].args[1] == 2


@pytest.mark.asyncio
async def test_run_wallet_rejects_malformed_key():
    assert await runner.run_wallet("0xnot-a-key", 1, RunConfig(), Settings()) is False


def test_cli_arguments():
    args = build_parser().parse_args(["--once", "--config", "c.json", "--log-level", "DEBUG"])

    assert args.once is True
    assert str(args.config) == "c.json"
    assert args.keys is None
    assert args.log_level == "DEBUG"


class TestDelays:
    def test_format_remaining(self):
        assert format_remaining(8 * 3600) == "08:00:00"
        assert format_remaining(3661) == "01:01:01"

    @pytest.mark.asyncio
    async def test_zero_delay(self):
        assert await add_random_delay(DelayConfig(min_seconds=0, max_seconds=0)) == 0

    @pytest.mark.asyncio
    async def test_countdown_rewrites_one_line(self):
        stream = io.StringIO()
        with patch("testnet_bot.utils.delay.asyncio.sleep", AsyncMock()):
            await countdown(0.001, stream=stream)

        output = stream.getvalue()
        assert "\rNext cycle in: 00:00:03" in output
        assert "\rNext cycle in: 00:00:01" in output
        assert "\n" not in output
