"""
Transaction submitter for one wallet.

Every on-chain action goes through ``TransactionSubmitter.send_transaction``:

    nonce -> gas price -> template -> gas limit -> sign
          -> nonce policy (optimistic increment) -> broadcast -> receipt

Gas price and gas limit lookups fall back to configured values instead of
failing. Nonce, signing and broadcast failures end the call, but are
reported as a failed ``TxResult`` rather than raised.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional

import structlog
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import to_checksum_address, to_hex

from .errors import (
    TransactionRevertError,
    TransactionSubmitError,
    TransactionTimeoutError,
    extract_error_details,
)
from .gas import apply_gas_buffer, compute_gas_price, effective_multiplier
from .models import (
    WEI_PER_GWEI,
    BalanceInfo,
    GasPolicy,
    Network,
    NetworkConfig,
    Quote,
    TxIntent,
    TxResult,
)
from .nonce_manager import NonceManager, NoncePolicy, OptimisticNoncePolicy
from .rpc import JsonRpcClient


def _gwei(value_wei: int) -> str:
    return f"{value_wei / WEI_PER_GWEI:.4f}".rstrip("0").rstrip(".")


class TransactionSubmitter:
    """
    Signs and broadcasts transactions for one account.

    One instance per wallet. Calls on the same instance must be serialized;
    different instances share no mutable state and may run concurrently.
    """

    def __init__(
        self,
        account: LocalAccount,
        networks: Mapping[Network, NetworkConfig],
        gas_policy: Optional[GasPolicy] = None,
        *,
        rpc_clients: Optional[Mapping[Network, JsonRpcClient]] = None,
        nonce_policy: Optional[NoncePolicy] = None,
        logger=None,
        wait_for_receipt: bool = True,
        receipt_timeout_seconds: float = 300,
        receipt_poll_interval: float = 2.0,
        request_timeout_seconds: float = 30.0,
    ):
        self.account = account
        self.networks: Dict[Network, NetworkConfig] = dict(networks)
        self.gas_policy = gas_policy or GasPolicy()
        self.nonce_policy = nonce_policy or OptimisticNoncePolicy()
        self.logger = logger or structlog.get_logger(__name__)
        self.wait_for_receipt = wait_for_receipt
        self.receipt_timeout_seconds = receipt_timeout_seconds
        self.receipt_poll_interval = receipt_poll_interval

        self._rpc: Dict[Network, JsonRpcClient] = dict(rpc_clients or {})
        for network, cfg in self.networks.items():
            if network not in self._rpc:
                self._rpc[network] = JsonRpcClient(cfg.rpc_url, timeout=request_timeout_seconds)

        self.nonces = NonceManager(self._fetch_nonce, logger=self.logger)

    @classmethod
    def from_private_key(
        cls,
        private_key: str,
        networks: Mapping[Network, NetworkConfig],
        gas_policy: Optional[GasPolicy] = None,
        **kwargs: Any,
    ) -> "TransactionSubmitter":
        if not private_key.startswith("0x"):
            private_key = f"0x{private_key}"
        return cls(Account.from_key(private_key), networks, gas_policy, **kwargs)

    @property
    def address(self) -> str:
        return self.account.address

    def network_config(self, network: Network = Network.PRIMARY) -> NetworkConfig:
        if network not in self.networks:
            raise ValueError(f"No network configured for {network.value}")
        return self.networks[network]

    def rpc(self, network: Network = Network.PRIMARY) -> JsonRpcClient:
        if network not in self._rpc:
            raise ValueError(f"No RPC client configured for {network.value}")
        return self._rpc[network]

    # ------------------------------------------------------------------
    # Nonce
    # ------------------------------------------------------------------

    async def _fetch_nonce(self, network: Network) -> int:
        # Confirmed count: excludes our own unconfirmed submissions
        return await self.rpc(network).get_transaction_count(self.address, "latest")

    async def get_nonce(self, network: Network = Network.PRIMARY) -> int:
        return await self.nonces.get_nonce(network)

    def increment_nonce(self, network: Network = Network.PRIMARY) -> None:
        self.nonces.increment_nonce(network)

    def reset_nonce(self, network: Network = Network.PRIMARY) -> None:
        self.nonces.reset_nonce(network)

    # ------------------------------------------------------------------
    # Gas
    # ------------------------------------------------------------------

    async def quote_gas_price(self, retry_count: int = 0, network: Network = Network.PRIMARY) -> Quote:
        """Gas price in wei, or the configured minimum if the node can't be asked."""
        try:
            network_price = await self.rpc(network).gas_price()
        except Exception as e:
            fallback = self.gas_policy.min_wei
            self.logger.warning(f"Error getting gas price: {e}", network=network.value)
            self.logger.warning(f"Using fallback gas price: {self.gas_policy.min_gwei} gwei", network=network.value)
            return Quote(value=fallback, fallback=True, error=str(e))

        multiplier = effective_multiplier(self.gas_policy, retry_count)
        if retry_count > 0:
            self.logger.info(
                f"Applying retry multiplier: {self.gas_policy.retry_increase ** retry_count:.2f}x "
                f"(total: {multiplier:.2f}x)"
            )

        price = compute_gas_price(network_price, self.gas_policy, retry_count)
        self.logger.info(
            f"{self.network_config(network).name} gas price: {_gwei(network_price)} gwei, "
            f"using: {_gwei(price)} gwei ({multiplier:.2f}x)"
        )
        if price == self.gas_policy.min_wei and price > int(network_price * multiplier):
            self.logger.warning(f"Gas price below minimum, using: {self.gas_policy.min_gwei} gwei")
        elif price == self.gas_policy.max_wei and price < int(network_price * multiplier):
            self.logger.warning(f"Gas price above maximum, using: {self.gas_policy.max_gwei} gwei")

        return Quote(value=price)

    async def get_gas_price(self, retry_count: int = 0, network: Network = Network.PRIMARY) -> int:
        return (await self.quote_gas_price(retry_count, network)).value

    async def quote_gas_limit(self, template: Dict[str, Any], network: Network = Network.PRIMARY) -> Quote:
        """Estimated gas plus buffer, or the configured default on any error."""
        try:
            estimated = await self.rpc(network).estimate_gas(self._to_rpc_call(template))
        except Exception as e:
            details = extract_error_details(e)
            default_gas = self.gas_policy.default_gas_limit
            self.logger.warning(
                f"Gas estimation failed: {details.message}",
                code=details.code,
                reason=details.reason,
            )
            self.logger.warning(f"Using default gas: {default_gas}")
            return Quote(value=default_gas, fallback=True, error=details.message)

        with_buffer = apply_gas_buffer(estimated, self.gas_policy.estimate_buffer_percent)
        self.logger.info(f"Estimated gas: {estimated}, with buffer: {with_buffer}")
        return Quote(value=with_buffer)

    async def estimate_gas(self, template: Dict[str, Any], network: Network = Network.PRIMARY) -> int:
        return (await self.quote_gas_limit(template, network)).value

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def build_template(self, intent: TxIntent, nonce: int, chain_id: int) -> Dict[str, Any]:
        """Template used for estimation and, with gas fields added, for signing."""
        template: Dict[str, Any] = {
            "from": to_checksum_address(intent.from_address or self.address),
            "value": intent.value,
            "data": intent.data,
            "nonce": nonce,
            "chainId": chain_id,
        }
        if intent.to:
            template["to"] = to_checksum_address(intent.to)
        return template

    @staticmethod
    def _to_rpc_call(template: Dict[str, Any]) -> Dict[str, Any]:
        call = {}
        for key, value in template.items():
            call[key] = hex(value) if isinstance(value, int) else value
        return call

    def _sign(self, tx: Dict[str, Any]) -> str:
        unsigned = {key: value for key, value in tx.items() if key != "from"}
        signed = self.account.sign_transaction(unsigned)
        return to_hex(signed.raw_transaction)

    async def send_transaction(
        self,
        intent: TxIntent,
        label: str = "transaction",
        network: Network = Network.PRIMARY,
        retry_count: int = 0,
    ) -> TxResult:
        """
        Sign and broadcast ``intent``. Never raises.

        ``retry_count`` only escalates the gas price; re-submission is up to
        the caller.
        """
        nonce: Optional[int] = None
        gas_limit: Optional[int] = None
        gas_price: Optional[int] = None
        tx_hash: Optional[str] = None
        signed = False

        try:
            cfg = self.network_config(network)
            rpc = self.rpc(network)

            nonce = await self.get_nonce(network)
            gas_price = await self.get_gas_price(retry_count, network)

            template = self.build_template(intent, nonce, cfg.chain_id)
            if intent.gas is not None:
                gas_limit = intent.gas
            else:
                gas_limit = await self.estimate_gas(template, network)

            tx = {**template, "gas": gas_limit, "gasPrice": gas_price}
            raw_tx = self._sign(tx)

            self.nonce_policy.after_sign(self.nonces, network)
            signed = True

            try:
                tx_hash = await rpc.send_raw_transaction(raw_tx)
            except Exception as e:
                raise TransactionSubmitError.from_error(e) from e

            receipt = None
            if self.wait_for_receipt:
                receipt = await self._wait_for_receipt(rpc, tx_hash)

            self.logger.info(f"{label} transaction successful", tx_hash=tx_hash, nonce=nonce)
            return TxResult(
                success=True,
                label=label,
                tx_hash=tx_hash,
                receipt=receipt,
                nonce=nonce,
                gas_limit=gas_limit,
                gas_price=gas_price,
            )

        except Exception as e:
            # Once broadcast, the nonce is taken by a pending or mined tx
            if signed and tx_hash is None:
                self.nonce_policy.on_broadcast_failure(self.nonces, network)

            details = extract_error_details(e)
            self.logger.error(
                f"Error in {label} transaction: {details.message}",
                code=details.code,
                reason=details.reason,
                network=network.value,
            )
            return TxResult(
                success=False,
                label=label,
                tx_hash=tx_hash or getattr(e, "tx_hash", None),
                nonce=nonce,
                gas_limit=gas_limit,
                gas_price=gas_price,
                error=details.message,
                details=details,
            )

    async def _wait_for_receipt(self, rpc: JsonRpcClient, tx_hash: str) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.receipt_timeout_seconds

        while True:
            try:
                receipt = await rpc.get_transaction_receipt(tx_hash)
            except Exception as e:
                self.logger.warning(f"Receipt poll failed: {e}", tx_hash=tx_hash)
                receipt = None

            if receipt:
                status = receipt.get("status", "0x1")
                status = int(status, 16) if isinstance(status, str) else int(status)
                if status == 0:
                    raise TransactionRevertError("Transaction reverted", tx_hash=tx_hash)
                return receipt

            if loop.time() >= deadline:
                raise TransactionTimeoutError(
                    f"Timed out waiting for receipt after {self.receipt_timeout_seconds}s",
                    tx_hash=tx_hash,
                )
            await asyncio.sleep(self.receipt_poll_interval)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, network: Network = Network.PRIMARY) -> BalanceInfo:
        cfg = self.network_config(network)
        try:
            balance = await self.rpc(network).get_balance(self.address)
        except Exception as e:
            self.logger.error(f"Error getting balance: {e}", network=network.value)
            return BalanceInfo(balance=0, currency=cfg.currency, error=str(e))

        info = BalanceInfo(balance=balance, currency=cfg.currency)
        self.logger.info(f"{cfg.name} Balance: {info.balance_in_eth} {cfg.currency}")
        return info

    async def call(self, to: str, data: str, network: Network = Network.PRIMARY) -> str:
        """Read-only contract call; errors propagate."""
        return await self.rpc(network).eth_call({
            "from": self.address,
            "to": to_checksum_address(to),
            "data": data,
        })

    async def close(self) -> None:
        """Close RPC clients."""
        for client in self._rpc.values():
            await client.close()
