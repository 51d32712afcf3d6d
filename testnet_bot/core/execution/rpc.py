"""
Minimal async Ethereum JSON-RPC client over HTTP.
"""

import itertools
from typing import Any, Dict, List, Optional

import httpx

from .errors import RpcError


def _to_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    raise ValueError(f"Unexpected quantity in RPC response: {value!r}")


class JsonRpcClient:
    """
    Talks JSON-RPC 2.0 to one node.

    The transport timeout is the only deadline applied to a call; a node that
    never answers within it raises ``httpx.TimeoutException``.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.rpc_url = rpc_url
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make an RPC call and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": next(self._ids),
        }

        response = await self._client.post(self.rpc_url, json=payload)
        response.raise_for_status()
        result = response.json()

        if result.get("error"):
            error = result["error"]
            if isinstance(error, dict):
                raise RpcError(
                    error.get("message", "RPC error"),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise RpcError(f"RPC error: {error}")

        return result.get("result")

    async def get_transaction_count(self, address: str, block: str = "latest") -> int:
        return _to_int(await self.call("eth_getTransactionCount", [address, block]))

    async def gas_price(self) -> int:
        return _to_int(await self.call("eth_gasPrice"))

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return _to_int(await self.call("eth_estimateGas", [tx]))

    async def send_raw_transaction(self, raw_tx: str) -> str:
        return await self.call("eth_sendRawTransaction", [raw_tx])

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return _to_int(await self.call("eth_getBalance", [address, block]))

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def eth_call(self, tx: Dict[str, Any], block: str = "latest") -> str:
        return await self.call("eth_call", [tx, block])

    async def chain_id(self) -> int:
        return _to_int(await self.call("eth_chainId"))

    async def close(self) -> None:
        """Close HTTP client."""
        await self._client.aclose()
