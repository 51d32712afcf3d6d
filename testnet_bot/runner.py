"""
Wallet orchestration.

Wallets are processed one after another: each gets its own submitter and
bound logger, runs the operation registry, and is followed by a short random
pause. ``run_forever`` repeats the pass after a countdown.
"""

from pathlib import Path
from typing import List, Optional

import structlog

from .config import RunConfig, Settings, settings as default_settings
from .core.execution import OptimisticNoncePolicy, StrictNoncePolicy, TransactionSubmitter
from .logging_config import get_wallet_logger
from .operations import OperationRegistry
from .utils.delay import countdown, wait_between_wallets

logger = structlog.get_logger(__name__)


class KeyFileError(Exception):
    """Raised when the private key file is missing or empty."""


def load_private_keys(path: Path) -> List[str]:
    """One key per line, blank lines ignored, ``0x`` prefix optional."""
    path = Path(path)
    if not path.exists():
        raise KeyFileError(f"Unable to load private keys. Make sure {path} exists.")

    keys = []
    for line in path.read_text(encoding="utf-8").splitlines():
        key = line.strip()
        if key:
            keys.append(key if key.startswith("0x") else f"0x{key}")

    if not keys:
        raise KeyFileError(f"No private keys found in {path}")

    logger.info(f"Successfully loaded {len(keys)} private keys")
    return keys


def build_submitter(
    private_key: str,
    run_config: RunConfig,
    settings: Settings,
    wallet_logger=None,
) -> TransactionSubmitter:
    nonce_policy = StrictNoncePolicy() if run_config.gas.strict_nonce else OptimisticNoncePolicy()
    return TransactionSubmitter.from_private_key(
        private_key,
        settings.network_configs(),
        run_config.gas_policy(),
        nonce_policy=nonce_policy,
        logger=wallet_logger,
        receipt_timeout_seconds=settings.receipt_timeout_seconds,
        receipt_poll_interval=settings.receipt_poll_interval_seconds,
        request_timeout_seconds=settings.request_timeout_seconds,
    )


async def run_wallet(
    private_key: str,
    wallet_num: int,
    run_config: RunConfig,
    settings: Settings,
) -> bool:
    """Run every selected operation for one wallet. Never raises."""
    wallet_logger = get_wallet_logger(wallet_num)
    try:
        submitter = build_submitter(private_key, run_config, settings, wallet_logger)
    except Exception as e:
        wallet_logger.error(f"Invalid private key: {e}")
        return False

    wallet_logger.info(f"Address: {submitter.address}")
    try:
        registry = OperationRegistry(submitter, run_config, settings, wallet_logger)
        return await registry.execute_all()
    except Exception as e:
        wallet_logger.error(f"Error in wallet operations: {e}")
        return False
    finally:
        await submitter.close()


async def run_wallets(
    private_keys: List[str],
    run_config: RunConfig,
    settings: Optional[Settings] = None,
) -> List[bool]:
    """One pass over all wallets, in order."""
    settings = settings or default_settings
    total = len(private_keys)
    logger.info(f"Processing {total} wallets...")

    results = []
    for index, private_key in enumerate(private_keys):
        wallet_num = index + 1
        wallet_logger = get_wallet_logger(wallet_num)
        wallet_logger.info(f"Processing Wallet {wallet_num}/{total}")

        results.append(await run_wallet(private_key, wallet_num, run_config, settings))

        if index < total - 1:
            await wait_between_wallets(wallet_logger)

    logger.info(f"Wallet processing completed: {sum(results)}/{total} wallets fully successful")
    return results


async def run_forever(
    private_keys: List[str],
    run_config: RunConfig,
    settings: Optional[Settings] = None,
) -> None:
    settings = settings or default_settings
    while True:
        await run_wallets(private_keys, run_config, settings)
        logger.info(f"Starting {settings.cycle_hours:g}-hour countdown...")
        await countdown(settings.cycle_hours, logger)
