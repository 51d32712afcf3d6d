"""
Transaction builder for contract deployments, contract calls and transfers.

Contracts are deployed from pre-compiled artifacts: JSON files holding the
``abi`` and creation ``bytecode`` produced by any Solidity toolchain.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector

from .models import TxIntent


class ArtifactError(ValueError):
    """Raised when a contract artifact is missing or malformed."""


def _abi_type(param: Dict[str, Any]) -> str:
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(_abi_type(component) for component in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def _normalize_hex(data: str) -> str:
    return data if data.startswith("0x") else f"0x{data}"


@dataclass(frozen=True)
class ContractArtifact:
    """Compiled contract: ABI plus creation bytecode."""
    name: str
    abi: Tuple[Dict[str, Any], ...]
    bytecode: str

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ContractArtifact":
        abi = data.get("abi")
        bytecode = data.get("bytecode")
        # solc standard-json output nests the bytecode under evm.bytecode.object
        if isinstance(bytecode, dict):
            bytecode = bytecode.get("object")
        if bytecode is None and isinstance(data.get("evm"), dict):
            bytecode = data["evm"].get("bytecode", {}).get("object")

        if not isinstance(abi, list):
            raise ArtifactError(f"Artifact {name} has no ABI")
        if not bytecode:
            raise ArtifactError(f"Artifact {name} has no bytecode")
        return cls(name=name, abi=tuple(abi), bytecode=_normalize_hex(bytecode))

    @classmethod
    def load(cls, artifacts_dir: Path, name: str) -> "ContractArtifact":
        path = Path(artifacts_dir) / f"{name}.json"
        if not path.exists():
            raise ArtifactError(f"Contract artifact not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ArtifactError(f"Invalid artifact JSON in {path}: {e}") from e
        return cls.from_dict(name, data)

    def function(self, name: str, arg_count: Optional[int] = None) -> Dict[str, Any]:
        for entry in self.abi:
            if entry.get("type") != "function" or entry.get("name") != name:
                continue
            if arg_count is None or len(entry.get("inputs", [])) == arg_count:
                return entry
        raise ArtifactError(f"Function {name} not found in {self.name} ABI")

    def constructor_types(self) -> List[str]:
        for entry in self.abi:
            if entry.get("type") == "constructor":
                return [_abi_type(p) for p in entry.get("inputs", [])]
        return []


def function_signature(entry: Dict[str, Any]) -> str:
    types = ",".join(_abi_type(p) for p in entry.get("inputs", []))
    return f"{entry['name']}({types})"


def encode_call(signature: str, arg_types: Sequence[str], args: Sequence[Any]) -> str:
    """Selector plus ABI-encoded arguments, hex with 0x prefix."""
    selector = function_signature_to_4byte_selector(signature)
    return "0x" + (selector + encode(list(arg_types), list(args))).hex()


def encode_function_call(
    artifact: ContractArtifact, method: str, args: Sequence[Any] = ()
) -> Tuple[Dict[str, Any], str]:
    """Look up ``method`` by name and arity and encode the call data."""
    entry = artifact.function(method, len(args))
    types = [_abi_type(p) for p in entry.get("inputs", [])]
    return entry, encode_call(function_signature(entry), types, args)


def decode_output(entry: Dict[str, Any], data: str) -> Tuple[Any, ...]:
    types = [_abi_type(p) for p in entry.get("outputs", [])]
    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    return tuple(decode(types, raw))


class TransactionBuilder:
    """
    Builds transaction intents.

    Handles:
    - Native token transfers
    - Contract deployments from artifacts
    - Contract method calls by ABI name
    """

    @staticmethod
    def build_native_transfer(to_address: str, amount_wei: int) -> TxIntent:
        return TxIntent(to=to_address, value=amount_wei, data="0x")

    @staticmethod
    def build_deployment(artifact: ContractArtifact, constructor_args: Sequence[Any] = ()) -> TxIntent:
        """
        Build a contract creation transaction.

        Args:
            artifact: The compiled contract
            constructor_args: Constructor arguments, in ABI order

        Returns:
            TxIntent with no recipient and bytecode + encoded args as data
        """
        types = artifact.constructor_types()
        if len(types) != len(constructor_args):
            raise ArtifactError(
                f"{artifact.name} constructor takes {len(types)} arguments, got {len(constructor_args)}"
            )
        data = artifact.bytecode
        if types:
            data += encode(types, list(constructor_args)).hex()
        return TxIntent(to=None, data=data)

    @staticmethod
    def build_contract_call(
        contract_address: str,
        artifact: ContractArtifact,
        method: str,
        args: Sequence[Any] = (),
        value: int = 0,
    ) -> TxIntent:
        """
        Build a state-changing call to a deployed contract.

        Args:
            contract_address: The deployed contract
            artifact: Artifact providing the ABI
            method: Function name
            args: Function arguments
            value: Wei to send along (payable functions)

        Returns:
            TxIntent ready for the submitter
        """
        _, data = encode_function_call(artifact, method, args)
        return TxIntent(to=contract_address, value=value, data=data)
