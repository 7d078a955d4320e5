"""Compiled contract artifacts and ABI encoding for contract-lifecycle library."""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from eth_abi import encode
from eth_utils import (
    encode_hex,
    function_signature_to_4byte_selector,
    remove_0x_prefix,
    to_bytes,
    to_checksum_address,
)

from .exceptions import ArtifactNotFoundError

_UNLINKED_LIBRARY = re.compile(r"__\$[0-9a-fA-F]{34}\$__")
_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no"}


def get_default_artifacts_dir() -> Path:
    """Get default Hardhat artifacts directory (./artifacts)."""
    return Path.cwd() / "artifacts"


def abi_type(param: Dict[str, Any]) -> str:
    """
    Get the canonical ABI type string of a parameter, expanding tuples.

    Args:
        param: ABI input entry, e.g. {"name": "owner", "type": "address"}

    Returns:
        Type string usable in signatures and eth_abi, e.g. "(address,uint256)[]"
    """
    type_str = param["type"]
    if type_str.startswith("tuple"):
        components = ",".join(abi_type(c) for c in param.get("components", []))
        return f"({components}){type_str[len('tuple'):]}"
    return type_str


def coerce_argument(type_str: str, value: Any) -> Any:
    """
    Convert a textual argument (e.g. from the command line) to its ABI value.

    Non-string values are returned unchanged.

    Args:
        type_str: Canonical ABI type
        value: Raw argument

    Returns:
        Value acceptable to eth_abi for that type

    Raises:
        ValueError: If the string cannot represent the type
    """
    if not isinstance(value, str):
        return value

    if type_str.endswith("]"):
        items = json.loads(value)
        element_type = type_str[: type_str.rindex("[")]
        return [coerce_argument(element_type, item) for item in items]
    if type_str.startswith(("uint", "int")):
        return int(value, 0)
    if type_str == "bool":
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"{value!r} is not a boolean")
    if type_str == "address":
        return to_checksum_address(value)
    if type_str.startswith("bytes"):
        return to_bytes(hexstr=value)
    return value


def encode_arguments(inputs: Sequence[Dict[str, Any]], args: Sequence[Any]) -> bytes:
    """
    ABI-encode arguments against a list of ABI inputs.

    Raises:
        ValueError: If the argument count does not match
    """
    if len(inputs) != len(args):
        raise ValueError(f"Expected {len(inputs)} arguments, got {len(args)}")
    types = [abi_type(param) for param in inputs]
    values = [coerce_argument(t, v) for t, v in zip(types, args)]
    return encode(types, values)


@dataclass(frozen=True)
class Artifact:
    """Compiled contract: ABI plus creation bytecode."""

    name: str
    abi: List[Dict[str, Any]]
    bytecode: str  # 0x-prefixed creation bytecode
    path: Optional[Path] = None

    def constructor_inputs(self) -> List[Dict[str, Any]]:
        """Returns the constructor's ABI inputs (empty if there is no constructor)."""
        for entry in self.abi:
            if entry.get("type") == "constructor":
                return list(entry.get("inputs", []))
        return []

    def function_abi(self, function_name: str, arg_count: int) -> Dict[str, Any]:
        """
        Find a function by name and arity.

        Raises:
            ValueError: If no function, or more than one overload, matches
        """
        candidates = [
            entry
            for entry in self.abi
            if entry.get("type") == "function"
            and entry.get("name") == function_name
            and len(entry.get("inputs", [])) == arg_count
        ]
        if not candidates:
            raise ValueError(
                f"{self.name} has no function '{function_name}' taking {arg_count} arguments"
            )
        if len(candidates) > 1:
            raise ValueError(f"Ambiguous overloads of '{function_name}' in {self.name}")
        return candidates[0]

    def encode_deploy_data(self, args: Sequence[Any] = ()) -> str:
        """
        Build the data field of a contract creation transaction.

        Args:
            args: Constructor arguments

        Returns:
            0x-prefixed bytecode followed by the encoded constructor arguments
        """
        encoded = encode_arguments(self.constructor_inputs(), args)
        return self.bytecode + remove_0x_prefix(encode_hex(encoded))

    def encode_call(self, function_name: str, args: Sequence[Any] = ()) -> str:
        """
        Build the calldata for a function call.

        Args:
            function_name: Function to call, e.g. "initialize"
            args: Function arguments

        Returns:
            0x-prefixed 4-byte selector followed by the encoded arguments
        """
        inputs = self.function_abi(function_name, len(args)).get("inputs", [])
        signature = f"{function_name}({','.join(abi_type(p) for p in inputs)})"
        selector = function_signature_to_4byte_selector(signature)
        return encode_hex(selector + encode_arguments(inputs, args))


class ArtifactSource:
    """Resolves contract names to Hardhat build artifacts."""

    def __init__(self, artifacts_dir: Optional[Union[Path, str]] = None):
        """
        Initialize the artifact source.

        Args:
            artifacts_dir: Hardhat artifacts directory
                           If None, uses ./artifacts
        """
        if artifacts_dir is None:
            artifacts_dir = get_default_artifacts_dir()
        self.artifacts_dir = Path(artifacts_dir).absolute()
        self._cache: Dict[str, Artifact] = {}

    def _find(self, name: str) -> Path:
        matches = [
            p for p in self.artifacts_dir.rglob(f"{name}.json") if "build-info" not in p.parts
        ]
        if not matches:
            raise ArtifactNotFoundError(f"No artifact for '{name}' under {self.artifacts_dir}")
        if len(matches) > 1:
            found = ", ".join(str(p.relative_to(self.artifacts_dir)) for p in sorted(matches))
            raise ArtifactNotFoundError(f"Ambiguous artifact for '{name}': {found}")
        return matches[0]

    def get(self, name: str) -> Artifact:
        """
        Load the artifact for a contract name.

        Args:
            name: Contract name, e.g. "CarbonCreditToken"

        Returns:
            Artifact

        Raises:
            ArtifactNotFoundError: If the artifact is missing, ambiguous, or not deployable
        """
        if name in self._cache:
            return self._cache[name]

        path = self._find(name)
        try:
            with open(path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ArtifactNotFoundError(f"Artifact {path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ArtifactNotFoundError(f"Artifact {path} is not a JSON object")

        abi = data.get("abi")
        bytecode = data.get("bytecode")
        if not isinstance(abi, list) or not isinstance(bytecode, str):
            raise ArtifactNotFoundError(f"Artifact {path} has no abi/bytecode")
        if bytecode in ("", "0x"):
            raise ArtifactNotFoundError(f"'{name}' is abstract or an interface; nothing to deploy")
        if _UNLINKED_LIBRARY.search(bytecode):
            raise ArtifactNotFoundError(f"'{name}' has unlinked libraries; link before deploying")
        if not bytecode.startswith("0x"):
            bytecode = "0x" + bytecode

        artifact = Artifact(
            name=data.get("contractName", name), abi=abi, bytecode=bytecode, path=path
        )
        self._cache[name] = artifact
        return artifact
